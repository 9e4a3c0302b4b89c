from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .trades import DEFAULT_MOOD, MOODS

# ---------------------------------------------------------------------
# Performance analytics over a set of realized trades.
# Pure and period-agnostic: callers filter by period first
# (see analytics.periods) and pass the already-filtered set.
# Win = net P/L > 0, loss = net P/L < 0, break-even = exactly 0.
# ---------------------------------------------------------------------

FRAME_COLUMNS = ["trade_date", "symbol", "net_profit_loss", "followed_setup", "mood"]


@dataclass
class MoodPerformance:
    mood: str
    trades: int
    win_rate: float
    avg_pl: float
    total_pl: float


@dataclass
class ScriptPerformance:
    script: str
    trades: int
    profit_loss: float
    win_rate: float
    avg_pl: float


@dataclass
class DailyPerformance:
    trade_date: date
    profit_loss: float
    trades: int


@dataclass
class SetupDiscipline:
    adherence_rate: float = 0.0
    followed_trades: int = 0
    followed_win_rate: float = 0.0
    followed_avg_pl: float = 0.0
    ignored_trades: int = 0
    ignored_win_rate: float = 0.0
    ignored_avg_pl: float = 0.0


@dataclass
class PeriodStats:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    break_even_trades: int = 0
    total_profit_loss: float = 0.0
    total_profit: float = 0.0
    total_loss: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    setup_adherence_rate: float = 0.0
    avg_profit_per_trade: float = 0.0
    avg_winning_trade: float = 0.0
    avg_losing_trade: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    trading_days: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    best_mood: Optional[str] = None
    worst_mood: Optional[str] = None
    mood_performance: List[MoodPerformance] = field(default_factory=list)
    setup_discipline: SetupDiscipline = field(default_factory=SetupDiscipline)
    top_scripts: List[ScriptPerformance] = field(default_factory=list)
    daily_performance: List[DailyPerformance] = field(default_factory=list)
    traded_scripts: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        """JSON-safe payload: an infinite profit factor is reported as None."""
        payload = asdict(self)
        if math.isinf(self.profit_factor):
            payload["profit_factor"] = None
        for day in payload["daily_performance"]:
            day["trade_date"] = day["trade_date"].isoformat()
        return payload


def percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return part / total * 100.0


def profit_factor(total_profit: float, total_loss: float) -> float:
    """Gross profit over gross loss magnitude; +inf when there are no losses."""
    total_loss = abs(total_loss)
    if total_loss == 0:
        return math.inf if total_profit > 0 else 0.0
    return abs(total_profit / total_loss)


def trade_value(trade: Any, name: str) -> Any:
    if isinstance(trade, Mapping):
        return trade.get(name)
    return getattr(trade, name, None)


def as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def trades_frame(trades: Iterable[Any]) -> pd.DataFrame:
    """Normalize ORM rows, TradeInputs or dicts into the analytics frame."""
    records = [{c: trade_value(t, c) for c in FRAME_COLUMNS} for t in trades]
    df = pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)
    df["trade_date"] = df["trade_date"].map(as_date)
    df["symbol"] = df["symbol"].fillna("").astype(str).str.strip().str.upper()
    df["net_profit_loss"] = df["net_profit_loss"].fillna(0.0).astype(float)
    df["followed_setup"] = df["followed_setup"].fillna(False).astype(bool)
    df["mood"] = df["mood"].fillna("").astype(str).str.strip().str.upper().replace("", DEFAULT_MOOD)
    return df


def _business_days_between(earlier: date, later: date) -> int:
    """Weekdays strictly between two dates."""
    return int(np.busday_count(earlier + timedelta(days=1), later))


def trading_streaks(dates: Iterable[date], as_of: Optional[date] = None) -> Tuple[int, int]:
    """Return (current, longest) runs of consecutive trading days.

    Weekends never break a run. The current run must end on ``as_of`` or the
    day before it, otherwise it is 0.
    """
    unique = sorted({d for d in dates if d is not None})
    if not unique:
        return 0, 0

    longest = run = 1
    for prev, cur in zip(unique, unique[1:]):
        run = run + 1 if _business_days_between(prev, cur) == 0 else 1
        longest = max(longest, run)

    as_of = as_of or date.today()
    traded = set(unique)
    if as_of in traded:
        check = as_of
    elif as_of - timedelta(days=1) in traded:
        check = as_of - timedelta(days=1)
    else:
        return 0, longest

    current = 0
    lower_bound = unique[0]
    while check >= lower_bound:
        if check.weekday() >= 5:
            check -= timedelta(days=1)
            continue
        if check not in traded:
            break
        current += 1
        check -= timedelta(days=1)
    return current, longest


def _mood_breakdown(df: pd.DataFrame) -> List[MoodPerformance]:
    agg = df.groupby("mood")["net_profit_loss"].agg(
        trades="size",
        wins=lambda s: int((s > 0).sum()),
        total_pl="sum",
    )
    extra = [m for m in agg.index if m not in MOODS]
    out = []
    for mood in list(MOODS) + sorted(extra):
        if mood in agg.index:
            row = agg.loc[mood]
            trades = int(row["trades"])
            total_pl = float(row["total_pl"])
            out.append(MoodPerformance(
                mood=mood,
                trades=trades,
                win_rate=percentage(int(row["wins"]), trades),
                avg_pl=total_pl / trades,
                total_pl=total_pl,
            ))
        else:
            out.append(MoodPerformance(mood=mood, trades=0, win_rate=0.0, avg_pl=0.0, total_pl=0.0))
    return out


def _best_and_worst(moods: List[MoodPerformance]) -> Tuple[Optional[str], Optional[str]]:
    best = worst = None
    for m in moods:
        if m.trades == 0:
            continue
        if best is None or m.win_rate > best.win_rate:
            best = m
        if worst is None or m.win_rate < worst.win_rate:
            worst = m
    return (best.mood if best else None), (worst.mood if worst else None)


def _setup_discipline(df: pd.DataFrame) -> SetupDiscipline:
    followed = df.loc[df["followed_setup"], "net_profit_loss"]
    ignored = df.loc[~df["followed_setup"], "net_profit_loss"]
    return SetupDiscipline(
        adherence_rate=percentage(len(followed), len(df)),
        followed_trades=int(len(followed)),
        followed_win_rate=percentage(int((followed > 0).sum()), len(followed)),
        followed_avg_pl=float(followed.mean()) if len(followed) else 0.0,
        ignored_trades=int(len(ignored)),
        ignored_win_rate=percentage(int((ignored > 0).sum()), len(ignored)),
        ignored_avg_pl=float(ignored.mean()) if len(ignored) else 0.0,
    )


def script_performance(df: pd.DataFrame, top_n: Optional[int] = None) -> List[ScriptPerformance]:
    """Per-symbol totals sorted by net P/L, best first (ties by symbol)."""
    agg = (
        df.groupby("symbol")["net_profit_loss"]
        .agg(trades="size", wins=lambda s: int((s > 0).sum()), profit_loss="sum")
        .sort_values("profit_loss", ascending=False, kind="mergesort")
    )
    if top_n is not None:
        agg = agg.head(top_n)
    return [
        ScriptPerformance(
            script=str(symbol),
            trades=int(row["trades"]),
            profit_loss=float(row["profit_loss"]),
            win_rate=percentage(int(row["wins"]), int(row["trades"])),
            avg_pl=float(row["profit_loss"]) / int(row["trades"]),
        )
        for symbol, row in agg.iterrows()
    ]


def daily_performance(df: pd.DataFrame) -> List[DailyPerformance]:
    """Net P/L and trade count per calendar day, oldest first."""
    agg = df.groupby("trade_date")["net_profit_loss"].agg(profit_loss="sum", trades="size")
    return [
        DailyPerformance(trade_date=day, profit_loss=float(row["profit_loss"]), trades=int(row["trades"]))
        for day, row in agg.iterrows()
    ]


def compute_stats(trades: Iterable[Any], *, as_of: Optional[date] = None, top_n: Optional[int] = 5) -> PeriodStats:
    """Compute the dashboard/report statistics for an already-filtered trade set."""
    trades = list(trades)
    if not trades:
        return PeriodStats(mood_performance=[
            MoodPerformance(mood=m, trades=0, win_rate=0.0, avg_pl=0.0, total_pl=0.0) for m in MOODS
        ])

    df = trades_frame(trades)
    net = df["net_profit_loss"]
    wins = net[net > 0]
    losses = net[net < 0]

    total = len(df)
    total_pl = float(net.sum())
    total_profit = float(wins.sum())
    total_loss = abs(float(losses.sum()))

    moods = _mood_breakdown(df)
    best_mood, worst_mood = _best_and_worst(moods)
    current_streak, longest_streak = trading_streaks(df["trade_date"], as_of=as_of)

    return PeriodStats(
        total_trades=total,
        winning_trades=int(len(wins)),
        losing_trades=int(len(losses)),
        break_even_trades=int((net == 0).sum()),
        total_profit_loss=total_pl,
        total_profit=total_profit,
        total_loss=total_loss,
        win_rate=percentage(len(wins), total),
        profit_factor=profit_factor(total_profit, total_loss),
        setup_adherence_rate=percentage(int(df["followed_setup"].sum()), total),
        avg_profit_per_trade=total_pl / total,
        avg_winning_trade=total_profit / len(wins) if len(wins) else 0.0,
        avg_losing_trade=total_loss / len(losses) if len(losses) else 0.0,
        largest_win=float(wins.max()) if len(wins) else 0.0,
        largest_loss=float(losses.min()) if len(losses) else 0.0,
        best_trade=float(net.max()),
        worst_trade=float(net.min()),
        trading_days=int(df["trade_date"].nunique()),
        current_streak=current_streak,
        longest_streak=longest_streak,
        best_mood=best_mood,
        worst_mood=worst_mood,
        mood_performance=moods,
        setup_discipline=_setup_discipline(df),
        top_scripts=script_performance(df, top_n=top_n),
        daily_performance=daily_performance(df),
        traded_scripts=list(dict.fromkeys(df["symbol"].tolist())),
    )
