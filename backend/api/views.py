import logging
import uuid
from datetime import date

from django.conf import settings
from django.http import HttpResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from analytics.errors import FormatError, MissingFieldsError, StoreError
from analytics.export import export_trades_csv
from analytics.importer import import_rows, import_template_rows
from analytics.mapping import REQUIRED_FIELDS, apply_overrides, propose_mapping
from analytics.parser import decode_trade_file
from analytics.performance import compute_stats
from analytics.periods import period_range

from .models import TradeRecord
from .serializers import ImportCommitSerializer, TradeInputSerializer, TradeRecordSerializer
from .store import OrmTradeStore

logger = logging.getLogger(__name__)


def _new_batch_id() -> str:
    return uuid.uuid4().hex[:12]


def _parse_day(value, name):
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from None


def _period_bounds(request):
    params = request.query_params
    return period_range(
        params.get("period", "all"),
        start=_parse_day(params.get("start"), "start"),
        end=_parse_day(params.get("end"), "end"),
    )


def _period_label(start, end) -> str:
    if start is None and end is None:
        return "All time"
    return f"{start.strftime('%d/%m/%Y') if start else '...'} - {end.strftime('%d/%m/%Y') if end else '...'}"


def _decode_upload(request):
    f = request.FILES.get("file")
    if not f:
        raise FormatError("Missing file")
    return decode_trade_file(f)


class ImportPreviewAPIView(APIView):
    """Decode an upload and propose a column mapping for the caller to review."""

    def post(self, request):
        try:
            sheet = _decode_upload(request)
        except FormatError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        mapping = propose_mapping(sheet.header, sheet.rows[0] if sheet.rows else None)
        return Response({
            "header": sheet.header,
            "mapping": mapping.as_list(),
            "missing_fields": [f.value for f in mapping.missing_fields(REQUIRED_FIELDS)],
            "row_count": len(sheet.rows),
            "sample_rows": sheet.rows[:5],
        })


class ImportTradesAPIView(APIView):
    """Commit an import: the upload plus the caller's (possibly edited) mapping."""

    def post(self, request):
        commit = ImportCommitSerializer(data=request.data)
        commit.is_valid(raise_exception=True)

        try:
            sheet = _decode_upload(request)
        except FormatError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        mapping = propose_mapping(sheet.header, sheet.rows[0] if sheet.rows else None)
        try:
            apply_overrides(mapping, commit.validated_data.get("mapping") or [])
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        batch_id = _new_batch_id()
        logger.info("Import %s: %d rows, %d columns, user=%s", batch_id, len(sheet.rows), len(sheet.header), request.user.pk)
        try:
            outcome = import_rows(
                sheet.rows,
                mapping,
                OrmTradeStore(request.user, batch_id=batch_id),
                concurrency=settings.TRADE_IMPORT_CONCURRENCY,
                batch_id=batch_id,
            )
        except MissingFieldsError as e:
            return Response({"error": str(e), "missing_fields": e.missing}, status=status.HTTP_400_BAD_REQUEST)

        return Response(outcome.as_dict())


class TemplateImportAPIView(APIView):
    """Import a file in the export layout (Date, Script, Type, ... headers)."""

    def post(self, request):
        try:
            sheet = _decode_upload(request)
        except FormatError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        batch_id = _new_batch_id()
        try:
            outcome = import_template_rows(
                sheet.header,
                sheet.rows,
                OrmTradeStore(request.user, batch_id=batch_id),
                concurrency=settings.TRADE_IMPORT_CONCURRENCY,
                batch_id=batch_id,
            )
        except MissingFieldsError as e:
            return Response({"error": str(e), "missing_fields": e.missing}, status=status.HTTP_400_BAD_REQUEST)

        return Response(outcome.as_dict())


class TradesListAPIView(APIView):
    """List trades (optionally by period or batch_id) and create manual entries."""

    def get(self, request):
        try:
            start, end = _period_bounds(request)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        trades = OrmTradeStore(request.user).list(start=start, end=end)
        batch_id = request.query_params.get("batch_id")
        if batch_id:
            trades = [t for t in trades if t.batch_id == batch_id]

        data = TradeRecordSerializer(trades, many=True).data
        return Response({"count": len(trades), "results": data})

    def post(self, request):
        serializer = TradeInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            record = OrmTradeStore(request.user).create(serializer.validated_data)
        except StoreError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(TradeRecordSerializer(record).data, status=status.HTTP_201_CREATED)


class TradeDetailAPIView(APIView):
    def get(self, request, pk):
        try:
            record = OrmTradeStore(request.user).get(pk)
        except TradeRecord.DoesNotExist:
            return Response({"error": "Trade not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(TradeRecordSerializer(record).data)

    def patch(self, request, pk):
        serializer = TradeInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            record = OrmTradeStore(request.user).update(pk, serializer.validated_data)
        except TradeRecord.DoesNotExist:
            return Response({"error": "Trade not found"}, status=status.HTTP_404_NOT_FOUND)
        except StoreError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(TradeRecordSerializer(record).data)

    def delete(self, request, pk):
        try:
            OrmTradeStore(request.user).delete(pk)
        except TradeRecord.DoesNotExist:
            return Response({"error": "Trade not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


class StatsAPIView(APIView):
    """Performance statistics for the requested period (default: all time)."""

    def get(self, request):
        try:
            start, end = _period_bounds(request)
            top_n = int(request.query_params.get("top", settings.TOP_SCRIPTS_DEFAULT))
            if top_n < 1:
                raise ValueError(f"top must be a positive integer, got {top_n}")
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        trades = OrmTradeStore(request.user).list(start=start, end=end)
        payload = compute_stats(trades, top_n=top_n).as_dict()
        payload["period"] = request.query_params.get("period", "all")
        payload["start"] = start.isoformat() if start else None
        payload["end"] = end.isoformat() if end else None
        return Response(payload)


class ExportAPIView(APIView):
    """CSV download of the period's trades with a summary block."""

    def get(self, request):
        try:
            start, end = _period_bounds(request)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        trades = OrmTradeStore(request.user).list(start=start, end=end)
        body = export_trades_csv(
            trades,
            summary=compute_stats(trades),
            period_label=_period_label(start, end),
        )
        period = request.query_params.get("period", "all")
        response = HttpResponse(body, content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="trading-report-{period}-{date.today().isoformat()}.csv"'
        return response
