import django.utils.timezone
import model_utils.fields
from django.db import migrations
from django.db import models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SystemConfig",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created",
                    model_utils.fields.AutoCreatedField(
                        default=django.utils.timezone.now,
                        editable=False,
                        verbose_name="created",
                    ),
                ),
                (
                    "modified",
                    model_utils.fields.AutoLastModifiedField(
                        default=django.utils.timezone.now,
                        editable=False,
                        verbose_name="modified",
                    ),
                ),
                (
                    "key",
                    models.CharField(
                        choices=[("payment_processing_fee", "Payment processing fee (%)")],
                        help_text="Setting identifier.",
                        max_length=100,
                        unique=True,
                    ),
                ),
                (
                    "value",
                    models.CharField(help_text="Raw setting value.", max_length=255),
                ),
            ],
            options={
                "verbose_name": "system setting",
                "ordering": ["key"],
            },
        ),
    ]
