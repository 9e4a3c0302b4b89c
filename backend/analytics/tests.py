import asyncio
import io
import math
from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pandas as pd
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase

from .dates import parse_day_first_date, parse_trade_date
from .errors import FormatError, MissingFieldsError, StoreError
from .export import EXPORT_COLUMNS, SUMMARY_MARKER, export_trades_csv
from .importer import TradeInput, import_rows, import_template_rows
from .mapping import (
    SemanticField,
    apply_overrides,
    guess_field,
    propose_mapping,
    template_mapping,
)
from .parser import decode_trade_file, is_filler_row, split_csv_line
from .performance import compute_stats, trading_streaks
from .periods import filter_by_period, period_range

# 2025-11-17 is a Monday.
MON, TUE, WED, THU, FRI, SAT = (date(2025, 11, 17) + timedelta(days=i) for i in range(6))
NEXT_MON = date(2025, 11, 24)

JOURNAL_HEADER = ["Date", "Script", "Type", "Qty", "Entry", "Exit", "P&L", "Follow Setup", "Remarks"]


class InMemoryStore:
    def __init__(self, reject=()):
        self.records = []
        self.reject = set(reject)

    def create(self, trade):
        if trade.symbol in self.reject:
            raise StoreError(f"{trade.symbol} is blocked")
        record = SimpleNamespace(id=len(self.records) + 1, **trade.as_dict())
        self.records.append(record)
        return record


class SlowAsyncStore:
    """Later rows finish first; tracks how many creates overlap."""

    def __init__(self):
        self.records = []
        self.in_flight = 0
        self.peak = 0

    async def create(self, trade):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.001 * (20 - trade.quantity))
        self.in_flight -= 1
        if trade.quantity == 13:
            raise StoreError("")
        record = SimpleNamespace(id=trade.quantity, **trade.as_dict())
        self.records.append(record)
        return record


class ExplodingStore:
    def create(self, trade):
        if trade.symbol == "BOOM":
            raise RuntimeError("disk on fire")
        return SimpleNamespace(id=1)


def _upload(name, text):
    return SimpleUploadedFile(name, text.encode("utf-8"))


def _journal_row(day="24/11/2025", symbol="reliance", side="buy", qty="100", entry="2500", exit_="2520",
                 followed="Yes", remarks="clean"):
    return [day, symbol, side, qty, entry, exit_, "2000", followed, remarks]


def _trade(day, net, mood="CALM", followed=False, symbol="TCS"):
    return {"trade_date": day, "symbol": symbol, "net_profit_loss": net, "followed_setup": followed, "mood": mood}


class FileDecodingTests(SimpleTestCase):
    def test_quoted_fields_keep_their_commas(self):
        self.assertEqual(
            split_csv_line('24/11/2025, TCS ,"Good, clean entry"'),
            ["24/11/2025", "TCS", "Good, clean entry"],
        )

    def test_csv_header_and_rows(self):
        sheet = decode_trade_file(_upload("journal.csv", "\ufeffDate,Script\r\n24/11/2025,TCS\r\n\r\n25/11/2025,INFY\r\n"))

        self.assertEqual(sheet.header, ["Date", "Script"])
        self.assertEqual(sheet.rows, [["24/11/2025", "TCS"], ["25/11/2025", "INFY"]])

    def test_filler_rows_are_dropped(self):
        sheet = decode_trade_file(_upload("journal.csv", "Date,Script,Qty\n24/11/2025,TCS,5\n0,0,0\n, ,\n"))

        self.assertEqual(sheet.rows, [["24/11/2025", "TCS", "5"]])
        self.assertTrue(is_filler_row(["", " 0 ", "0"]))
        self.assertFalse(is_filler_row(["", "0", "TCS"]))

    def test_unsupported_extension(self):
        with self.assertRaises(FormatError) as ctx:
            decode_trade_file(_upload("journal.pdf", "Date\n24/11/2025\n"))
        self.assertIn("Unsupported file type", str(ctx.exception))

    def test_header_only_file_is_rejected(self):
        with self.assertRaises(FormatError):
            decode_trade_file(_upload("journal.csv", "Date,Script\n"))

    def test_invalid_utf8_is_a_format_error(self):
        with self.assertRaises(FormatError):
            decode_trade_file(SimpleUploadedFile("journal.csv", b"Date\n\xff\xfe\xfa\n"))

    def test_xlsx_first_sheet(self):
        buf = io.BytesIO()
        pd.DataFrame([
            ["Date", "Script", "Qty"],
            ["24/11/2025", "TCS", 100],
            [0, None, 0],
        ]).to_excel(buf, header=False, index=False)

        sheet = decode_trade_file(SimpleUploadedFile("Journal.XLSX", buf.getvalue()))

        self.assertEqual(sheet.header, ["Date", "Script", "Qty"])
        self.assertEqual(sheet.rows, [["24/11/2025", "TCS", "100"]])

    def test_corrupt_spreadsheet_is_a_format_error(self):
        with self.assertRaises(FormatError):
            decode_trade_file(SimpleUploadedFile("journal.xlsx", b"not really a workbook"))


class ColumnMappingTests(SimpleTestCase):
    def test_header_keywords(self):
        cases = {
            "Trade Date": SemanticField.DATE,
            "Day": SemanticField.DATE,
            "Stock Entry Date": SemanticField.DATE,
            "Script": SemanticField.SYMBOL,
            "Buy/Sell": SemanticField.SIDE,
            "Type": SemanticField.SIDE,
            "Qty": SemanticField.QUANTITY,
            "Quantity": SemanticField.QUANTITY,
            "Buy Price": SemanticField.ENTRY_PRICE,
            "Entry": SemanticField.ENTRY_PRICE,
            "Sell Price": SemanticField.EXIT_PRICE,
            "Exit Price": SemanticField.EXIT_PRICE,
            "P&L": SemanticField.PROFIT_LOSS,
            "Profit Points": SemanticField.PROFIT_LOSS,
            "Points": SemanticField.IGNORE,
            "Follow Setup": SemanticField.FOLLOW_SETUP,
            "Notes": SemanticField.REMARKS,
            "Initial Capital": SemanticField.IGNORE,
            "Current Capital": SemanticField.IGNORE,
            "Charges": SemanticField.IGNORE,
            "Mood": SemanticField.IGNORE,
        }
        for header, expected in cases.items():
            with self.subTest(header=header):
                self.assertEqual(guess_field(header), expected)

    def test_proposal_carries_samples(self):
        mapping = propose_mapping(JOURNAL_HEADER, _journal_row())
        first = mapping.as_list()[0]

        self.assertEqual(first, {"index": 0, "header": "Date", "sample": "24/11/2025", "target": "DATE"})
        self.assertEqual(mapping.missing_fields(), [])

    def test_missing_required_fields(self):
        mapping = propose_mapping(["Date", "Script", "Qty"])

        with self.assertRaises(MissingFieldsError) as ctx:
            mapping.require()
        self.assertEqual(ctx.exception.missing, ["SIDE", "ENTRY_PRICE", "EXIT_PRICE", "PROFIT_LOSS"])

    def test_overrides(self):
        mapping = propose_mapping(["Day", "Brokerage", "Feeling"])
        apply_overrides(mapping, [None, "charges", "MOOD"])

        self.assertEqual([c.target for c in mapping], [SemanticField.DATE, SemanticField.CHARGES, SemanticField.MOOD])
        with self.assertRaises(ValueError):
            apply_overrides(mapping, ["NOT_A_FIELD"])
        with self.assertRaises(ValueError):
            apply_overrides(mapping, [None, None, None, None])
        with self.assertRaises(IndexError):
            mapping.set_target(3, SemanticField.DATE)

    def test_right_most_duplicate_wins(self):
        mapping = propose_mapping(["Date", "Trade Date"])
        self.assertEqual(mapping.positions()[SemanticField.DATE], 1)

    def test_template_mapping_is_exact_and_case_insensitive(self):
        mapping = template_mapping(EXPORT_COLUMNS)
        targets = {c.header: c.target for c in mapping}

        self.assertEqual(targets["Buy Price"], SemanticField.ENTRY_PRICE)
        self.assertEqual(targets["Charges"], SemanticField.CHARGES)
        self.assertEqual(targets["P&L"], SemanticField.IGNORE)
        self.assertEqual(targets["Net P&L"], SemanticField.IGNORE)
        self.assertEqual(template_mapping([" MOOD "]).columns[0].target, SemanticField.MOOD)


class DateParsingTests(SimpleTestCase):
    def test_unambiguous_layouts(self):
        self.assertEqual(parse_trade_date("24/11/2025"), date(2025, 11, 24))
        self.assertEqual(parse_trade_date("11/24/2025"), date(2025, 11, 24))
        self.assertEqual(parse_trade_date("2025-11-24"), date(2025, 11, 24))
        self.assertEqual(parse_trade_date("2025-11-24 00:00:00"), date(2025, 11, 24))
        self.assertEqual(parse_trade_date("Nov 24, 2025"), date(2025, 11, 24))

    def test_ambiguous_dates_differ_between_policies(self):
        self.assertEqual(parse_trade_date("03/04/2025"), date(2025, 3, 4))
        self.assertEqual(parse_day_first_date("03/04/2025"), date(2025, 4, 3))

    def test_two_digit_years(self):
        self.assertEqual(parse_trade_date("05-06-24"), date(2024, 6, 5))
        self.assertEqual(parse_day_first_date("03/04/25"), date(2025, 4, 3))

    def test_impossible_dates(self):
        self.assertIsNone(parse_trade_date("31/04/2025"))
        self.assertIsNone(parse_trade_date("not a date"))
        self.assertIsNone(parse_day_first_date("31/02/2025"))
        self.assertIsNone(parse_day_first_date("aa/bb/2025"))
        self.assertIsNone(parse_trade_date("1/1/99999999999"))
        self.assertIsNone(parse_day_first_date("1/1/99999999999"))

    def test_blank_dates(self):
        self.assertEqual(parse_trade_date("  "), date.today())
        self.assertIsNone(parse_day_first_date(""))

    def test_day_first_falls_back_to_generic_parse(self):
        self.assertEqual(parse_day_first_date("2025-11-24"), date(2025, 11, 24))
        self.assertEqual(parse_day_first_date("12/31/2025"), date(2025, 12, 31))


class ImportTests(SimpleTestCase):
    def test_partial_failure_keeps_good_rows(self):
        rows = [_journal_row(symbol=s) for s in ("tcs", "infy", "sbin", "hdfc", "itc")]
        rows[2][3] = "-5"
        store = InMemoryStore()

        outcome = import_rows(rows, propose_mapping(JOURNAL_HEADER), store)

        self.assertEqual((outcome.succeeded, outcome.failed, outcome.skipped), (4, 1, 0))
        self.assertEqual(outcome.errors[0].row_number, 3)
        self.assertIn("quantity", outcome.errors[0].reason)
        self.assertEqual(str(outcome.errors[0]), 'Row 3: invalid quantity "-5"')
        self.assertEqual([r.symbol for r in store.records], ["TCS", "INFY", "HDFC", "ITC"])
        self.assertEqual(len(outcome.created_ids), 4)

    def test_profit_loss_is_derived_not_read(self):
        store = InMemoryStore()
        import_rows([_journal_row()], propose_mapping(JOURNAL_HEADER), store)
        trade = store.records[0]

        self.assertEqual(trade.trade_date, date(2025, 11, 24))
        self.assertEqual((trade.side, trade.quantity), ("BUY", 100))
        self.assertEqual(trade.gross_profit_loss, 2000.0)
        self.assertEqual(trade.charges, 0.0)
        self.assertEqual(trade.net_profit_loss, 2000.0)
        self.assertTrue(trade.followed_setup)
        self.assertEqual(trade.mood, "CALM")
        self.assertEqual(trade.remarks, "clean")

    def test_missing_fields_abort_before_any_row(self):
        store = InMemoryStore()
        with self.assertRaises(MissingFieldsError) as ctx:
            import_rows([["24/11/2025", "TCS"]], propose_mapping(["Date", "Script"]), store)

        self.assertIn("PROFIT_LOSS", ctx.exception.missing)
        self.assertEqual(store.records, [])

    def test_row_level_reasons(self):
        rows = [
            _journal_row(day=""),
            _journal_row(day="31/02/2025"),
            _journal_row(day="1/1/99999999999"),
            _journal_row(symbol=""),
            _journal_row(side="HOLD"),
            _journal_row(qty="1.5"),
            _journal_row(entry="abc"),
            _journal_row(exit_="0"),
            _journal_row(remarks="x" * 501),
        ]
        outcome = import_rows(rows, propose_mapping(JOURNAL_HEADER), InMemoryStore())

        self.assertEqual(outcome.succeeded, 0)
        self.assertEqual([e.reason for e in outcome.errors], [
            "missing date",
            'invalid date "31/02/2025"',
            'invalid date "1/1/99999999999"',
            "missing symbol",
            'invalid side "HOLD" (must be BUY or SELL)',
            'invalid quantity "1.5"',
            'invalid entry price "abc"',
            'invalid exit price "0"',
            "remarks too long (max 500 characters)",
        ])

    def test_charges_and_mood_by_override(self):
        header = JOURNAL_HEADER + ["Brokerage", "Feeling"]
        rows = [
            _journal_row() + ["20", "fomo"],
            _journal_row() + ["-3", ""],
            _journal_row() + ["n/a", "bored"],
        ]
        mapping = apply_overrides(propose_mapping(header), [None] * 9 + ["CHARGES", "MOOD"])
        store = InMemoryStore()

        outcome = import_rows(rows, mapping, store)

        self.assertEqual(store.records[0].charges, 20.0)
        self.assertEqual(store.records[0].net_profit_loss, 1980.0)
        self.assertEqual(store.records[0].mood, "FOMO")
        self.assertEqual(store.records[1].charges, 0.0)
        self.assertEqual(store.records[1].mood, "CALM")
        self.assertEqual(outcome.errors[0].row_number, 3)
        self.assertEqual(outcome.errors[0].reason, 'invalid mood "BORED"')

    def test_follow_setup_defaults_to_false(self):
        rows = [_journal_row(followed=v) for v in ("no", "", "TRUE", "1", "maybe")]
        store = InMemoryStore()
        import_rows(rows, propose_mapping(JOURNAL_HEADER), store)

        self.assertEqual([r.followed_setup for r in store.records], [False, False, True, True, False])

    def test_filler_rows_are_skipped(self):
        rows = [_journal_row(), ["0", "", "", "0", "", "", "", "", ""]]
        outcome = import_rows(rows, propose_mapping(JOURNAL_HEADER), InMemoryStore())

        self.assertEqual((outcome.succeeded, outcome.failed, outcome.skipped), (1, 0, 1))

    def test_row_numbers_count_decoded_data_rows(self):
        text = "\n".join([
            ",".join(JOURNAL_HEADER),
            ",".join(_journal_row()),
            "0,0,0,0,0,0,0,0,0",
            ",".join(_journal_row(qty="-5")),
        ])
        sheet = decode_trade_file(_upload("journal.csv", text))

        outcome = import_rows(sheet.rows, propose_mapping(sheet.header), InMemoryStore())

        self.assertEqual((outcome.succeeded, outcome.failed, outcome.skipped), (1, 1, 0))
        self.assertEqual(outcome.errors[0].row_number, 2)

    def test_store_rejection_fails_only_that_row(self):
        rows = [_journal_row(symbol="tcs"), _journal_row(symbol="blocked"), _journal_row(symbol="infy")]
        outcome = import_rows(rows, propose_mapping(JOURNAL_HEADER), InMemoryStore(reject={"BLOCKED"}))

        self.assertEqual((outcome.succeeded, outcome.failed), (2, 1))
        self.assertEqual(outcome.as_dict()["errors"], [{"row": 2, "reason": "BLOCKED is blocked"}])

    def test_unexpected_store_errors_are_recorded(self):
        rows = [_journal_row(symbol="boom"), _journal_row(symbol="tcs")]
        outcome = import_rows(rows, propose_mapping(JOURNAL_HEADER), ExplodingStore())

        self.assertEqual((outcome.succeeded, outcome.failed), (1, 1))
        self.assertEqual(outcome.errors[0].reason, "unexpected error: disk on fire")

    def test_async_store_is_bounded_and_errors_stay_ordered(self):
        rows = [_journal_row(qty=str(q), exit_="2400" if q == 15 else "2520") for q in range(10, 20)]
        rows[6][1] = ""
        store = SlowAsyncStore()

        outcome = import_rows(rows, propose_mapping(JOURNAL_HEADER), store, concurrency=3, batch_id="b1")

        self.assertLessEqual(store.peak, 3)
        self.assertEqual(outcome.batch_id, "b1")
        self.assertEqual((outcome.succeeded, outcome.failed), (8, 2))
        self.assertEqual([(e.row_number, e.reason) for e in outcome.errors],
                         [(4, "rejected by store"), (7, "missing symbol")])
        self.assertEqual(outcome.created_ids, [10, 11, 12, 14, 15, 17, 18, 19])

    def test_template_import_reads_day_first(self):
        header = ["Date", "Script", "Type", "Quantity", "Buy Price", "Sell Price", "Charges", "Remarks", "Follow Setup"]
        rows = [["03/04/2025", "tcs", "SELL", "10", "100", "90", "5", "", "yes"]]
        store = InMemoryStore()

        outcome = import_template_rows(header, rows, store)

        self.assertEqual(outcome.succeeded, 1)
        trade = store.records[0]
        self.assertEqual(trade.trade_date, date(2025, 4, 3))
        self.assertEqual((trade.gross_profit_loss, trade.net_profit_loss), (-100.0, -105.0))
        self.assertIsNone(trade.remarks)


class PerformanceTests(SimpleTestCase):
    def _mixed(self):
        return [
            _trade(MON, 100.0, "CALM", True, "TCS"),
            _trade(TUE, -50.0, "CALM", True, "INFY"),
            _trade(WED, 0.0, "FOMO", False, "HDFC"),
            _trade(THU, 200.0, "FOMO", False, "TCS"),
            _trade(FRI, -50.0, "ANXIOUS", True, "SBIN"),
        ]

    def test_empty_set(self):
        stats = compute_stats([])

        self.assertEqual(stats.total_trades, 0)
        self.assertEqual(stats.win_rate, 0.0)
        self.assertEqual(stats.profit_factor, 0.0)
        self.assertIsNone(stats.best_mood)
        self.assertIsNone(stats.worst_mood)
        self.assertEqual(len(stats.mood_performance), 6)
        self.assertTrue(all(m.trades == 0 for m in stats.mood_performance))

    def test_totals(self):
        stats = compute_stats(self._mixed(), as_of=FRI)

        self.assertEqual((stats.winning_trades, stats.losing_trades, stats.break_even_trades), (2, 2, 1))
        self.assertEqual(stats.win_rate, 40.0)
        self.assertEqual(stats.total_profit_loss, 200.0)
        self.assertEqual((stats.total_profit, stats.total_loss), (300.0, 100.0))
        self.assertEqual(stats.profit_factor, 3.0)
        self.assertEqual(stats.setup_adherence_rate, 60.0)
        self.assertEqual((stats.avg_winning_trade, stats.avg_losing_trade), (150.0, 50.0))
        self.assertEqual((stats.largest_win, stats.largest_loss), (200.0, -50.0))
        self.assertEqual(stats.trading_days, 5)
        self.assertEqual((stats.current_streak, stats.longest_streak), (5, 5))
        self.assertEqual(stats.traded_scripts, ["TCS", "INFY", "HDFC", "SBIN"])

    def test_setup_discipline(self):
        discipline = compute_stats(self._mixed(), as_of=FRI).setup_discipline

        self.assertEqual((discipline.followed_trades, discipline.ignored_trades), (3, 2))
        self.assertAlmostEqual(discipline.followed_win_rate, 100 / 3)
        self.assertAlmostEqual(discipline.followed_avg_pl, 0.0)
        self.assertEqual((discipline.ignored_win_rate, discipline.ignored_avg_pl), (50.0, 100.0))

    def test_best_and_worst_mood(self):
        stats = compute_stats(self._mixed(), as_of=FRI)

        self.assertEqual(stats.best_mood, "CALM")
        self.assertEqual(stats.worst_mood, "ANXIOUS")
        self.assertEqual([m.mood for m in stats.mood_performance],
                         ["CALM", "CONFIDENT", "OVERCONFIDENT", "ANXIOUS", "FOMO", "PANICKED"])

    def test_single_mood_is_both_best_and_worst(self):
        stats = compute_stats([_trade(MON, 10.0), _trade(TUE, -5.0)], as_of=TUE)

        self.assertEqual((stats.best_mood, stats.worst_mood), ("CALM", "CALM"))

    def test_no_losses_gives_infinite_profit_factor(self):
        stats = compute_stats([_trade(MON, 100.0), _trade(TUE, 50.0)], as_of=TUE)

        self.assertTrue(math.isinf(stats.profit_factor))
        self.assertIsNone(stats.as_dict()["profit_factor"])

    def test_top_scripts_sorted_and_capped(self):
        stats = compute_stats(self._mixed(), as_of=FRI, top_n=3)

        self.assertEqual([s.script for s in stats.top_scripts], ["TCS", "HDFC", "INFY"])
        self.assertEqual(stats.top_scripts[0].profit_loss, 300.0)
        self.assertEqual(stats.top_scripts[0].trades, 2)

    def test_pure_and_repeatable(self):
        trades = self._mixed()
        snapshot = [dict(t) for t in trades]

        self.assertEqual(compute_stats(trades, as_of=FRI), compute_stats(trades, as_of=FRI))
        self.assertEqual(trades, snapshot)

    def test_accepts_record_objects(self):
        records = [SimpleNamespace(**t) for t in self._mixed()]
        self.assertEqual(compute_stats(records, as_of=FRI), compute_stats(self._mixed(), as_of=FRI))

    def test_daily_performance(self):
        trades = self._mixed() + [_trade(MON, -30.0, symbol="ITC")]
        stats = compute_stats(trades, as_of=FRI)

        self.assertEqual(
            [(d.trade_date, d.profit_loss, d.trades) for d in stats.daily_performance],
            [(MON, 70.0, 2), (TUE, -50.0, 1), (WED, 0.0, 1), (THU, 200.0, 1), (FRI, -50.0, 1)],
        )
        self.assertEqual(
            stats.as_dict()["daily_performance"][0],
            {"trade_date": "2025-11-17", "profit_loss": 70.0, "trades": 2},
        )
        self.assertEqual(compute_stats([]).daily_performance, [])

    def test_trading_days_count_calendar_days(self):
        trades = [
            _trade(datetime(2025, 11, 17, 9, 20), 10.0),
            _trade(datetime(2025, 11, 17, 14, 45), -5.0),
            _trade(datetime(2025, 11, 18, 10, 0), 3.0),
        ]
        stats = compute_stats(trades, as_of=TUE)

        self.assertEqual(stats.trading_days, 2)
        self.assertEqual((stats.current_streak, stats.longest_streak), (2, 2))
        self.assertEqual([(d.trade_date, d.trades) for d in stats.daily_performance], [(MON, 2), (TUE, 1)])

    def test_weekends_do_not_break_streaks(self):
        self.assertEqual(trading_streaks([THU, FRI, NEXT_MON], as_of=NEXT_MON), (3, 3))
        self.assertEqual(trading_streaks([MON, TUE, WED, THU, FRI], as_of=SAT), (5, 5))

    def test_missed_weekday_breaks_streak(self):
        self.assertEqual(trading_streaks([MON, TUE, THU], as_of=THU), (1, 2))
        self.assertEqual(trading_streaks([MON, TUE, THU], as_of=date(2025, 12, 10)), (0, 2))
        self.assertEqual(trading_streaks([]), (0, 0))


class PeriodTests(SimpleTestCase):
    today = date(2025, 11, 26)

    def test_named_periods(self):
        self.assertEqual(period_range("all", today=self.today), (None, None))
        self.assertEqual(period_range("week", today=self.today), (date(2025, 11, 24), self.today))
        self.assertEqual(period_range("month", today=self.today), (date(2025, 11, 1), self.today))
        self.assertEqual(period_range("year", today=self.today), (date(2025, 1, 1), self.today))

    def test_custom_period(self):
        self.assertEqual(period_range("custom", today=self.today), (date(2025, 11, 1), self.today))
        self.assertEqual(
            period_range("custom", today=self.today, start=MON, end=WED),
            (MON, WED),
        )
        with self.assertRaises(ValueError):
            period_range("custom", today=self.today, start=WED, end=MON)

    def test_unknown_period(self):
        with self.assertRaises(ValueError):
            period_range("fortnight", today=self.today)

    def test_filter_is_inclusive(self):
        trades = [_trade(d, 1.0) for d in (MON, TUE, WED, THU, FRI)]
        kept = filter_by_period(trades, TUE, THU)

        self.assertEqual([t["trade_date"] for t in kept], [TUE, WED, THU])
        self.assertEqual(len(filter_by_period(trades, None, None)), 5)


class ExportTests(SimpleTestCase):
    def _trades(self):
        return [
            TradeInput(
                trade_date=date(2025, 11, 24), symbol="TCS", side="BUY", quantity=10,
                entry_price=3500.5, exit_price=3512.25, gross_profit_loss=117.5, charges=12.34,
                net_profit_loss=105.16, followed_setup=True, mood="CONFIDENT", remarks="Good, clean entry",
            ),
            TradeInput(
                trade_date=date(2025, 11, 25), symbol="INFY", side="SELL", quantity=3,
                entry_price=1500.0, exit_price=1490.1, gross_profit_loss=-29.7, charges=0.0,
                net_profit_loss=-29.7,
            ),
        ]

    def test_layout(self):
        lines = export_trades_csv(self._trades()).splitlines()

        self.assertEqual(lines[0], ",".join(EXPORT_COLUMNS))
        self.assertEqual(
            lines[1],
            '24/11/2025,TCS,BUY,10,3500.50,3512.25,117.50,12.34,105.16,Yes,"Good, clean entry",CONFIDENT',
        )
        self.assertEqual(len(lines), 3)

    def test_summary_block(self):
        trades = self._trades()
        lines = export_trades_csv(trades, summary=compute_stats(trades), period_label="November").splitlines()

        self.assertEqual(lines[3], "")
        self.assertEqual(lines[4], SUMMARY_MARKER)
        self.assertIn("Period,November", lines)
        self.assertIn("Total Trades,2", lines)
        self.assertIn("Win Rate,50.0%", lines)

    def test_round_trip_through_template_import(self):
        trades = self._trades()
        body = export_trades_csv(trades, summary=compute_stats(trades))
        sheet = decode_trade_file(_upload("export.csv", body))
        store = InMemoryStore()

        outcome = import_template_rows(sheet.header, sheet.rows, store)

        self.assertEqual((outcome.succeeded, outcome.failed), (2, 0))
        for original, imported in zip(trades, store.records):
            self.assertEqual(imported.trade_date, original.trade_date)
            self.assertEqual(imported.symbol, original.symbol)
            self.assertEqual(imported.side, original.side)
            self.assertEqual(imported.quantity, original.quantity)
            self.assertEqual(imported.followed_setup, original.followed_setup)
            self.assertEqual(imported.mood, original.mood)
            self.assertEqual(imported.remarks, original.remarks)
            for name in ("entry_price", "exit_price", "charges", "gross_profit_loss", "net_profit_loss"):
                self.assertAlmostEqual(getattr(imported, name), getattr(original, name), places=2)
