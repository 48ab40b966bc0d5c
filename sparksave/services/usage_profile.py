"""
Usage Profile Service

Normalizes a customer's raw usage points into a UsageProfile: monthly averages,
annualized consumption, peak and low months, seasonal swing, trend direction and
a data quality grade.

Processing rules:
- Points dated after the as-of date are ignored
- Points are bucketed by calendar month; several points in one month are averaged
- Only the most recent 12 observed months are kept
- annualKwh is the monthly average annualized (the plain sum for a full year)
- Trend is the sign of the least-squares slope of kWh over calendar month index,
  with a dead zone of 2% of the average treated as stable

The builder never raises for sparse data. An empty or all-zero history produces a
profile graded `insufficient`; deciding whether that is fatal is the ranker's job.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from sparksave.models.enums import DataQuality, UsageTrend
from sparksave.models.schemas import UsagePoint, UsageProfile


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Observed months retained in a profile
MAX_PROFILE_MONTHS = 12

# Months needed before a profile is at least partial / complete
PARTIAL_DATA_MIN_MONTHS = 3
COMPLETE_DATA_MIN_MONTHS = 12

# Number of months reported in peakUsageMonths / lowUsageMonths
REPORTED_EXTREME_MONTHS = 3

# Slope below this fraction of the monthly average is a flat trend
DEFAULT_TREND_DEAD_ZONE = 0.02


# =============================================================================
# Helpers
# =============================================================================


def _bucket_by_month(points: List[UsagePoint]) -> pd.DataFrame:
    """
    Group usage points into calendar months.

    Returns:
        DataFrame indexed by monthly Period (ascending) with `kwh` and `cost`
        columns holding the per-month mean. `cost` is NaN for months whose
        points carry no billed cost.
    """
    frame = pd.DataFrame({
        'timestamp': pd.to_datetime([p.timestamp for p in points]),
        'kwh': np.array([p.kwh for p in points], dtype=np.float64),
        'cost': np.array(
            [p.cost if p.cost is not None else np.nan for p in points],
            dtype=np.float64,
        ),
    })
    frame['month'] = frame['timestamp'].dt.to_period('M')

    monthly = (
        frame.groupby('month')
        .agg(kwh=('kwh', 'mean'), cost=('cost', 'mean'))
        .sort_index()
    )
    return monthly.tail(MAX_PROFILE_MONTHS)


def _classify_trend(
    month_index: np.ndarray,
    kwh: np.ndarray,
    average: float,
    dead_zone: float,
) -> UsageTrend:
    if len(kwh) < 2 or average <= 0:
        return UsageTrend.STABLE

    # Offset from the first month keeps polyfit well conditioned
    slope = float(np.polyfit(month_index - month_index[0], kwh, 1)[0])

    if abs(slope) < dead_zone * average:
        return UsageTrend.STABLE
    return UsageTrend.INCREASING if slope > 0 else UsageTrend.DECREASING


def _grade_data_quality(months_observed: int, average: float) -> DataQuality:
    if months_observed < PARTIAL_DATA_MIN_MONTHS or average <= 0:
        return DataQuality.INSUFFICIENT
    if months_observed < COMPLETE_DATA_MIN_MONTHS:
        return DataQuality.PARTIAL
    return DataQuality.COMPLETE


def _empty_profile() -> UsageProfile:
    return UsageProfile(
        averageMonthlyKwh=0.0,
        peakMonth=None,
        peakMonthKwh=0.0,
        annualKwh=0.0,
        seasonalVariation=0.0,
        usageTrend=UsageTrend.STABLE,
        dataQuality=DataQuality.INSUFFICIENT,
        monthsObserved=0,
    )


# =============================================================================
# Public API
# =============================================================================


def build_usage_profile(
    usage_points: Iterable[UsagePoint],
    as_of_date: date,
    trend_dead_zone: float = DEFAULT_TREND_DEAD_ZONE,
) -> UsageProfile:
    """
    Build a normalized usage profile from raw usage points.

    Args:
        usage_points: Usage points in any order; may be empty.
        as_of_date: Evaluation date. Points after this date are ignored.
        trend_dead_zone: Slope, as a fraction of the monthly average, below
            which the trend is reported as stable.

    Returns:
        UsageProfile: The normalized profile. Calling this twice with the same
        inputs yields equal profiles.
    """
    points = [p for p in usage_points if p.timestamp <= as_of_date]
    if not points:
        logger.debug(f"No usage points on or before {as_of_date}; returning empty profile")
        return _empty_profile()

    monthly = _bucket_by_month(points)
    kwh = monthly['kwh'].to_numpy(dtype=np.float64)
    labels = [str(period) for period in monthly.index]
    month_index = np.array(
        [period.year * 12 + period.month for period in monthly.index],
        dtype=np.float64,
    )

    months_observed = len(labels)
    average = float(np.mean(kwh))
    # A full year reports its exact total rather than the extrapolated mean
    annual_kwh = (
        float(sum(kwh.tolist())) if months_observed == COMPLETE_DATA_MIN_MONTHS else average * 12
    )

    # argmax returns the first maximum, i.e. the earliest month on ties
    peak_pos = int(np.argmax(kwh))
    peak_kwh = float(kwh[peak_pos])
    trough_kwh = float(np.min(kwh))

    seasonal_variation = (peak_kwh - trough_kwh) / average if average > 0 else 0.0

    by_usage_desc = sorted(range(months_observed), key=lambda i: (-kwh[i], labels[i]))
    by_usage_asc = sorted(range(months_observed), key=lambda i: (kwh[i], labels[i]))

    costs = monthly['cost'].dropna()
    observed_annual_cost: Optional[float] = (
        float(costs.mean()) * 12 if not costs.empty else None
    )

    profile = UsageProfile(
        averageMonthlyKwh=average,
        peakMonth=labels[peak_pos],
        peakMonthKwh=peak_kwh,
        annualKwh=annual_kwh,
        seasonalVariation=seasonal_variation,
        usageTrend=_classify_trend(month_index, kwh, average, trend_dead_zone),
        dataQuality=_grade_data_quality(months_observed, average),
        monthsObserved=months_observed,
        peakUsageMonths=[labels[i] for i in by_usage_desc[:REPORTED_EXTREME_MONTHS]],
        lowUsageMonths=[labels[i] for i in by_usage_asc[:REPORTED_EXTREME_MONTHS]],
        monthlyKwh={label: float(value) for label, value in zip(labels, kwh)},
        observedAnnualCost=observed_annual_cost,
    )

    logger.debug(
        f"Built usage profile: {months_observed} months, "
        f"avg={average:.1f} kWh, quality={profile.dataQuality.value}, "
        f"trend={profile.usageTrend.value}"
    )
    return profile
