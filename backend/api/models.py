from django.conf import settings
from django.core.validators import MaxLengthValidator, MinValueValidator
from django.db import models

from analytics.trades import DEFAULT_MOOD, MOODS, SIDES, compute_profit_loss


class TradeRecord(models.Model):
    """One realized intraday trade, entered manually or imported from a file.

    Notes:
    - gross/net P/L are derived columns. ``save()`` recomputes them from the
      prices, quantity and charges, so they can never drift from their inputs.
    - ``batch_id`` groups rows created by the same import run (blank for
      manual entry).
    """
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="trades")
    trade_date = models.DateField(db_index=True)
    symbol = models.CharField(max_length=50, db_index=True)
    side = models.CharField(max_length=4, choices=[(s, s) for s in SIDES])
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    entry_price = models.FloatField(validators=[MinValueValidator(0.0001)])
    exit_price = models.FloatField(validators=[MinValueValidator(0.0001)])
    gross_profit_loss = models.FloatField(default=0.0, help_text="(exit - entry) * quantity")
    charges = models.FloatField(default=0.0, validators=[MinValueValidator(0.0)])
    net_profit_loss = models.FloatField(default=0.0, help_text="gross_profit_loss - charges")
    followed_setup = models.BooleanField(default=False)
    mood = models.CharField(max_length=16, choices=[(m, m) for m in MOODS], default=DEFAULT_MOOD)
    remarks = models.TextField(blank=True, null=True, validators=[MaxLengthValidator(500)])

    batch_id = models.CharField(max_length=64, db_index=True, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-trade_date", "-id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name="trade_quantity_positive"),
            models.CheckConstraint(condition=models.Q(charges__gte=0), name="trade_charges_non_negative"),
        ]

    def recompute_profit_loss(self) -> None:
        self.gross_profit_loss, self.net_profit_loss = compute_profit_loss(
            self.entry_price, self.exit_price, self.quantity, self.charges
        )

    def save(self, *args, **kwargs):
        self.symbol = (self.symbol or "").strip().upper()
        self.recompute_profit_loss()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.trade_date} {self.side} {self.symbol} net={self.net_profit_loss}"
