from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ("storefront", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="OnlineCategory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="categories",
                        to="storefront.onlinestore",
                    ),
                ),
            ],
            options={
                "ordering": ["sort_order", "name"],
                "verbose_name_plural": "online categories",
                "constraints": [
                    models.UniqueConstraint(fields=("store", "slug"), name="uniq_category_slug_per_store"),
                ],
            },
        ),
        migrations.AddField(
            model_name="onlineproduct",
            name="category",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="products",
                to="storefront.onlinecategory",
            ),
        ),
    ]
