from rest_framework import serializers

from analytics.mapping import SemanticField
from analytics.trades import DEFAULT_MOOD, MOODS, SIDES

from .models import TradeRecord


class TradeRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = TradeRecord
        fields = [
            "id", "trade_date", "symbol", "side", "quantity", "entry_price", "exit_price",
            "gross_profit_loss", "charges", "net_profit_loss", "followed_setup", "mood", "remarks", "batch_id",
        ]
        read_only_fields = ["id", "gross_profit_loss", "net_profit_loss", "batch_id"]


class TradeInputSerializer(serializers.Serializer):
    """Manual entry and edits. P/L is never accepted from the client."""
    trade_date = serializers.DateField()
    symbol = serializers.CharField(max_length=50)
    side = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1)
    entry_price = serializers.FloatField()
    exit_price = serializers.FloatField()
    charges = serializers.FloatField(min_value=0.0, default=0.0)
    followed_setup = serializers.BooleanField(default=False)
    mood = serializers.CharField(default=DEFAULT_MOOD)
    remarks = serializers.CharField(max_length=500, allow_blank=True, allow_null=True, required=False)

    def validate_symbol(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("Symbol is required")
        return value

    def _positive(self, value, label):
        if value <= 0:
            raise serializers.ValidationError(f"{label} must be positive")
        return value

    def validate_entry_price(self, value):
        return self._positive(value, "Entry price")

    def validate_exit_price(self, value):
        return self._positive(value, "Exit price")

    def validate_side(self, value):
        value = value.strip().upper()
        if value not in SIDES:
            raise serializers.ValidationError("Side must be BUY or SELL")
        return value

    def validate_mood(self, value):
        value = (value or DEFAULT_MOOD).strip().upper()
        if value not in MOODS:
            raise serializers.ValidationError(f"Mood must be one of {', '.join(MOODS)}")
        return value


class ImportCommitSerializer(serializers.Serializer):
    """Optional per-column overrides; ``null`` keeps the proposed target."""
    mapping = serializers.JSONField(required=False)

    def validate_mapping(self, value):
        if value is None:
            return None
        if not isinstance(value, list):
            raise serializers.ValidationError("mapping must be a list of field names by column index")
        allowed = {f.value for f in SemanticField}
        for entry in value:
            if entry is not None and str(entry).upper() not in allowed:
                raise serializers.ValidationError(f"Unknown field {entry!r}. Allowed: {sorted(allowed)}")
        return value
