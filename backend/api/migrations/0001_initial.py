import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="TradeRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("trade_date", models.DateField(db_index=True)),
                ("symbol", models.CharField(db_index=True, max_length=50)),
                ("side", models.CharField(choices=[("BUY", "BUY"), ("SELL", "SELL")], max_length=4)),
                ("quantity", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("entry_price", models.FloatField(validators=[django.core.validators.MinValueValidator(0.0001)])),
                ("exit_price", models.FloatField(validators=[django.core.validators.MinValueValidator(0.0001)])),
                ("gross_profit_loss", models.FloatField(default=0.0, help_text="(exit - entry) * quantity")),
                ("charges", models.FloatField(default=0.0, validators=[django.core.validators.MinValueValidator(0.0)])),
                ("net_profit_loss", models.FloatField(default=0.0, help_text="gross_profit_loss - charges")),
                ("followed_setup", models.BooleanField(default=False)),
                (
                    "mood",
                    models.CharField(
                        choices=[
                            ("CALM", "CALM"),
                            ("CONFIDENT", "CONFIDENT"),
                            ("OVERCONFIDENT", "OVERCONFIDENT"),
                            ("ANXIOUS", "ANXIOUS"),
                            ("FOMO", "FOMO"),
                            ("PANICKED", "PANICKED"),
                        ],
                        default="CALM",
                        max_length=16,
                    ),
                ),
                ("remarks", models.TextField(blank=True, null=True, validators=[django.core.validators.MaxLengthValidator(500)])),
                ("batch_id", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="trades",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-trade_date", "-id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="trade_quantity_positive"),
                    models.CheckConstraint(condition=models.Q(("charges__gte", 0)), name="trade_charges_non_negative"),
                ],
            },
        ),
    ]
