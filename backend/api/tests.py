import json
from datetime import date

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from rest_framework.test import APIClient

from analytics.errors import StoreError
from analytics.export import SUMMARY_MARKER

from .models import TradeRecord
from .schemas import IMPORT_RESPONSE_EXAMPLE, PREVIEW_RESPONSE_KEYS, STATS_RESPONSE_KEYS
from .store import OrmTradeStore

JOURNAL_CSV = (
    "Date,Script,Type,Qty,Entry,Exit,P&L,Follow Setup,Remarks\n"
    "24/11/2025,tcs,BUY,10,100,110,100,Yes,breakout\n"
    "24/11/2025,infy,SELL,5,200,190,-50,No,\n"
    "25/11/2025,sbin,BUY,-5,300,310,50,Yes,\n"
    "0,0,0,0,0,0,0,0,0\n"
    "25/11/2025,hdfc,BUY,1,1500,1510,10,yes,\n"
    "26/11/2025,itc,SELL,20,400,402,40,no,\n"
)


def _csv(name="journal.csv", text=JOURNAL_CSV):
    return SimpleUploadedFile(name, text.encode("utf-8"), content_type="text/csv")


class JournalAPITestCase(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user("trader", password="secret")
        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.store = OrmTradeStore(self.user)

    def _record(self, day, entry, exit_, **extra):
        data = {
            "trade_date": day,
            "symbol": "TCS",
            "side": "BUY",
            "quantity": 10,
            "entry_price": entry,
            "exit_price": exit_,
        }
        data.update(extra)
        return self.store.create(data)


class ImportAPITests(JournalAPITestCase):
    def test_preview_proposes_mapping(self):
        res = self.client.post("/api/import/preview/", {"file": _csv()}, format="multipart")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(sorted(res.data.keys()), sorted(PREVIEW_RESPONSE_KEYS))
        self.assertEqual(res.data["missing_fields"], [])
        self.assertEqual(res.data["row_count"], 5)
        self.assertEqual(res.data["mapping"][6], {"index": 6, "header": "P&L", "sample": "100", "target": "PROFIT_LOSS"})
        self.assertEqual(TradeRecord.objects.count(), 0)

    def test_import_keeps_good_rows(self):
        res = self.client.post("/api/import/", {"file": _csv()}, format="multipart")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(sorted(res.data.keys()), sorted(IMPORT_RESPONSE_EXAMPLE.keys()))
        self.assertEqual((res.data["succeeded"], res.data["failed"], res.data["skipped"]), (4, 1, 0))
        self.assertEqual(res.data["errors"], IMPORT_RESPONSE_EXAMPLE["errors"])

        records = TradeRecord.objects.filter(owner=self.user)
        self.assertEqual(records.count(), 4)
        self.assertEqual({r.batch_id for r in records}, {res.data["batch_id"]})
        tcs = records.get(symbol="TCS")
        self.assertEqual((tcs.gross_profit_loss, tcs.net_profit_loss), (100.0, 100.0))
        self.assertTrue(tcs.followed_setup)
        self.assertEqual(tcs.trade_date, date(2025, 11, 24))

    def test_mapping_overrides(self):
        text = "Day,Symbol,Side,Lot,Entry,Exit,Profit,Brokerage\n24/11/2025,TCS,BUY,10,100,110,100,7.5\n"
        mapping = [None] * 7 + ["CHARGES"]

        res = self.client.post("/api/import/", {"file": _csv(text=text), "mapping": json.dumps(mapping)}, format="multipart")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["succeeded"], 1)
        record = TradeRecord.objects.get(owner=self.user)
        self.assertEqual(record.charges, 7.5)
        self.assertEqual(record.net_profit_loss, 92.5)

    def test_unknown_mapping_field_is_rejected(self):
        res = self.client.post("/api/import/", {"file": _csv(), "mapping": json.dumps(["PRICE"])}, format="multipart")
        self.assertEqual(res.status_code, 400)

    def test_missing_required_fields(self):
        text = "Date,Script,Qty\n24/11/2025,TCS,10\n"
        res = self.client.post("/api/import/", {"file": _csv(text=text)}, format="multipart")

        self.assertEqual(res.status_code, 400)
        self.assertIn("PROFIT_LOSS", res.data["missing_fields"])
        self.assertEqual(TradeRecord.objects.count(), 0)

    def test_format_errors(self):
        res = self.client.post("/api/import/", {"file": _csv(name="journal.txt")}, format="multipart")
        self.assertEqual(res.status_code, 400)
        self.assertIn("Unsupported file type", res.data["error"])

        res = self.client.post("/api/import/", {}, format="multipart")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Missing file")

    def test_export_then_template_import(self):
        self._record(date(2025, 11, 24), 100, 110, charges=2.5, remarks="Good, clean", followed_setup=True, mood="FOMO")
        self._record(date(2025, 11, 25), 200, 190, symbol="INFY", side="SELL")
        exported = self.client.get("/api/export/").content.decode("utf-8")
        TradeRecord.objects.all().delete()

        res = self.client.post("/api/import/template/", {"file": _csv(name="export.csv", text=exported)}, format="multipart")

        self.assertEqual(res.status_code, 200)
        self.assertEqual((res.data["succeeded"], res.data["failed"]), (2, 0))
        tcs = TradeRecord.objects.get(symbol="TCS")
        self.assertEqual(tcs.charges, 2.5)
        self.assertEqual(tcs.net_profit_loss, 97.5)
        self.assertEqual(tcs.remarks, "Good, clean")
        self.assertEqual(tcs.mood, "FOMO")
        self.assertTrue(tcs.followed_setup)
        self.assertEqual(TradeRecord.objects.get(symbol="INFY").net_profit_loss, -100.0)


class TradeAPITests(JournalAPITestCase):
    def test_create_update_delete(self):
        res = self.client.post("/api/trades/", {
            "trade_date": "2025-11-24",
            "symbol": " tcs ",
            "side": "buy",
            "quantity": 10,
            "entry_price": 100,
            "exit_price": 110,
            "charges": 5,
        }, format="json")

        self.assertEqual(res.status_code, 201)
        self.assertEqual((res.data["symbol"], res.data["side"]), ("TCS", "BUY"))
        self.assertEqual((res.data["gross_profit_loss"], res.data["net_profit_loss"]), (100.0, 95.0))
        self.assertEqual(res.data["mood"], "CALM")
        pk = res.data["id"]

        res = self.client.patch(f"/api/trades/{pk}/", {"exit_price": 90}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual((res.data["gross_profit_loss"], res.data["net_profit_loss"]), (-100.0, -105.0))
        self.assertEqual(res.data["charges"], 5.0)

        self.assertEqual(self.client.get(f"/api/trades/{pk}/").status_code, 200)
        self.assertEqual(self.client.delete(f"/api/trades/{pk}/").status_code, 204)
        self.assertEqual(self.client.get(f"/api/trades/{pk}/").status_code, 404)

    def test_invalid_manual_entry(self):
        res = self.client.post("/api/trades/", {
            "trade_date": "2025-11-24",
            "symbol": "TCS",
            "side": "HOLD",
            "quantity": 0,
            "entry_price": 100,
            "exit_price": 110,
            "mood": "bored",
        }, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(set(res.data.keys()), {"side", "quantity", "mood"})

    def test_other_users_trades_are_invisible(self):
        other = get_user_model().objects.create_user("someone", password="secret")
        record = OrmTradeStore(other).create({
            "trade_date": date(2025, 11, 24), "symbol": "TCS", "side": "BUY",
            "quantity": 1, "entry_price": 1, "exit_price": 2,
        })

        self.assertEqual(self.client.get(f"/api/trades/{record.pk}/").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/trades/{record.pk}/").status_code, 404)
        self.assertEqual(self.client.get("/api/trades/").data["count"], 0)

    def test_list_by_period_and_batch(self):
        self._record(date(2025, 11, 3), 100, 110)
        self._record(date(2025, 11, 24), 100, 90)
        OrmTradeStore(self.user, batch_id="b1").create({
            "trade_date": date(2025, 11, 25), "symbol": "ITC", "side": "SELL",
            "quantity": 1, "entry_price": 10, "exit_price": 9,
        })

        res = self.client.get("/api/trades/", {"period": "custom", "start": "2025-11-20", "end": "2025-11-30"})
        self.assertEqual(res.data["count"], 2)
        self.assertEqual([t["trade_date"] for t in res.data["results"]], ["2025-11-24", "2025-11-25"])

        res = self.client.get("/api/trades/", {"batch_id": "b1"})
        self.assertEqual([t["symbol"] for t in res.data["results"]], ["ITC"])

    def test_store_rejects_invalid_records(self):
        with self.assertRaises(StoreError):
            self.store.create({
                "trade_date": date(2025, 11, 24), "symbol": "TCS", "side": "BUY",
                "quantity": 1, "entry_price": 1, "exit_price": 2, "mood": "BORED",
            })
        self.assertEqual(TradeRecord.objects.count(), 0)

    def test_requires_authentication(self):
        res = APIClient().get("/api/trades/")
        self.assertIn(res.status_code, (401, 403))


class StatsAPITests(JournalAPITestCase):
    def test_stats_for_custom_period(self):
        self._record(date(2025, 11, 17), 100, 110, followed_setup=True)
        self._record(date(2025, 11, 18), 100, 105, symbol="INFY")
        self._record(date(2025, 11, 28), 100, 90)

        res = self.client.get("/api/stats/", {"period": "custom", "start": "2025-11-17", "end": "2025-11-21"})

        self.assertEqual(res.status_code, 200)
        for key in STATS_RESPONSE_KEYS:
            self.assertIn(key, res.data)
        self.assertEqual(res.data["total_trades"], 2)
        self.assertEqual(res.data["win_rate"], 100.0)
        self.assertIsNone(res.data["profit_factor"])
        self.assertEqual(res.data["setup_adherence_rate"], 50.0)
        self.assertEqual(res.data["start"], "2025-11-17")
        self.assertEqual([s["script"] for s in res.data["top_scripts"]], ["TCS", "INFY"])
        self.assertEqual(res.data["daily_performance"], [
            {"trade_date": "2025-11-17", "profit_loss": 100.0, "trades": 1},
            {"trade_date": "2025-11-18", "profit_loss": 50.0, "trades": 1},
        ])

    def test_all_time_and_top_limit(self):
        self._record(date(2025, 11, 17), 100, 110)
        self._record(date(2025, 11, 18), 100, 90, symbol="INFY")

        res = self.client.get("/api/stats/", {"top": 1})

        self.assertEqual(res.data["total_trades"], 2)
        self.assertEqual(res.data["profit_factor"], 1.0)
        self.assertEqual(len(res.data["top_scripts"]), 1)
        self.assertIsNone(res.data["start"])

    def test_empty_stats(self):
        res = self.client.get("/api/stats/")

        self.assertEqual(res.data["total_trades"], 0)
        self.assertEqual(res.data["profit_factor"], 0.0)
        self.assertIsNone(res.data["best_mood"])
        self.assertEqual(len(res.data["mood_performance"]), 6)

    def test_bad_period_parameters(self):
        self.assertEqual(self.client.get("/api/stats/", {"period": "decade"}).status_code, 400)
        self.assertEqual(self.client.get("/api/stats/", {"period": "custom", "start": "24/11/2025"}).status_code, 400)
        self.assertEqual(self.client.get("/api/stats/", {"top": "many"}).status_code, 400)
        self.assertEqual(self.client.get("/api/stats/", {"top": "0"}).status_code, 400)
        self.assertEqual(self.client.get("/api/stats/", {"top": "-1"}).status_code, 400)

    def test_export_csv(self):
        self._record(date(2025, 11, 24), 100, 110, remarks="note")

        res = self.client.get("/api/export/", {"period": "custom", "start": "2025-11-01", "end": "2025-11-30"})

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res["Content-Type"].startswith("text/csv"))
        self.assertIn('filename="trading-report-custom-', res["Content-Disposition"])
        lines = res.content.decode("utf-8").splitlines()
        self.assertTrue(lines[0].startswith("Date,Script,Type"))
        self.assertTrue(lines[1].startswith("24/11/2025,TCS,BUY,10,100.00,110.00,100.00,0.00,100.00,No,note"))
        self.assertIn(SUMMARY_MARKER, lines)
        self.assertIn("Period,01/11/2025 - 30/11/2025", lines)
