import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .exceptions import DomainError
from .webhooks import dispatch_identity_event, parse_identity_event


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def identity_webhook(request):
    try:
        event = parse_identity_event(request.body, request.headers)
        message = dispatch_identity_event(event)
    except DomainError as exc:
        return JsonResponse({"error": exc.message}, status=exc.status_code)
    except Exception:
        logger.exception("Identity webhook processing failed")
        return JsonResponse({"error": "Webhook processing failed"}, status=500)
    return JsonResponse({"message": message})
