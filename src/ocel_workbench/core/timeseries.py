from __future__ import annotations

from typing import Iterable

import pandas as pd

from .ocel import EventLog

AUTO = "auto"
FREQUENCIES = ["1s", "1min", "5min", "15min", "1h", "6h", "1D", "7D", "30D"]
SERIES = ["EventCount", "ObjectCount", "UniqueActivities", "MeanObjectsPerEvent"]
BIN_COLUMN = "Bin Start"
TARGET_BINS = 50


def derive_frequency(start: pd.Timestamp, end: pd.Timestamp, target_bins: int = TARGET_BINS) -> str:
    """Smallest frequency that covers [start, end] in at most `target_bins` bins."""

    span = end - start
    for freq in FREQUENCIES:
        if span / pd.Timedelta(freq) < target_bins:
            return freq
    return FREQUENCIES[-1]


def _binned(log: EventLog, frequency: str) -> tuple[pd.DataFrame, pd.DatetimeIndex, str]:
    rows = [
        {"event_id": e.event_id, "activity": e.activity, "timestamp": e.timestamp, "omap": list(e.omap)}
        for e in log.ordered_events()
    ]
    frame = pd.DataFrame(rows, columns=["event_id", "activity", "timestamp", "omap"])
    if frame.empty:
        freq = FREQUENCIES[0] if frequency == AUTO else frequency
        return frame.assign(bin=pd.Series(dtype="datetime64[ns]")), pd.DatetimeIndex([]), freq
    frame["timestamp"] = pd.to_datetime(frame["timestamp"])
    freq = derive_frequency(frame["timestamp"].min(), frame["timestamp"].max()) if frequency == AUTO else frequency
    frame["bin"] = frame["timestamp"].dt.floor(freq)
    bins = pd.date_range(frame["bin"].min(), frame["bin"].max(), freq=freq)
    return frame, bins, freq


def event_series(log: EventLog, frequency: str = AUTO, series: Iterable[str] = SERIES) -> tuple[pd.DataFrame, str]:
    """Numeric series per time bin. Returns the table and the frequency used."""

    series = [s for s in SERIES if s in set(series)]
    frame, bins, freq = _binned(log, frequency)
    result = pd.DataFrame(index=bins)
    grouped = frame.groupby("bin")
    if "EventCount" in series:
        result["EventCount"] = grouped["event_id"].count().reindex(bins, fill_value=0)
    if "ObjectCount" in series:
        exploded = frame[["bin", "omap"]].explode("omap").dropna(subset=["omap"])
        result["ObjectCount"] = exploded.groupby("bin")["omap"].nunique().reindex(bins, fill_value=0)
    if "UniqueActivities" in series:
        result["UniqueActivities"] = grouped["activity"].nunique().reindex(bins, fill_value=0)
    if "MeanObjectsPerEvent" in series:
        sizes = frame.assign(size=frame["omap"].map(len).astype(float))
        result["MeanObjectsPerEvent"] = sizes.groupby("bin")["size"].mean().reindex(bins, fill_value=0.0)
    result = result.astype(float)
    result.insert(0, BIN_COLUMN, [ts.isoformat() for ts in bins])
    return result.reset_index(drop=True), freq


def activity_series(log: EventLog, frequency: str = AUTO) -> pd.DataFrame:
    """Event counts per time bin with one column per activity."""

    frame, bins, _ = _binned(log, frequency)
    if frame.empty:
        return pd.DataFrame(columns=[BIN_COLUMN])
    counts = (
        frame.groupby(["bin", "activity"])["event_id"].count().unstack(fill_value=0)
        .reindex(bins, fill_value=0)
        .astype(float)
    )
    counts = counts[sorted(counts.columns)]
    counts.columns = [str(c) for c in counts.columns]
    counts.insert(0, BIN_COLUMN, [ts.isoformat() for ts in bins])
    return counts.reset_index(drop=True)
