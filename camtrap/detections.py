"""
Sampling effort and detection summaries.

This module contains functions for:
- Summarising daily camera activity to days sampled per site
- Restricting detection events to days the camera was active
- Summarising tagged detection events to days detected and image counts
- Joining effort and detection summaries onto the site points
- Converting detections to proportions of sampled days
- Checking the joined table for impossible values
"""

import numpy as np
import pandas as pd

from camtrap.config import SITE_ID_COL

COUNT_COLS = ['days_sampled', 'days_detected', 'n_images', 'livestock_days']


def _require_columns(df, columns, table_name):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{table_name} table is missing columns: {missing}")


def _calendar_days(dates):
    """ISO dates or timestamps truncated to the calendar day."""
    return pd.to_datetime(dates, format='ISO8601').dt.normalize()


def summarise_effort(effort):
    """
    Count the days each site was actively recording.

    Parameters
    ----------
    effort : DataFrame
        Either one row per site per day with columns site_id, date, active
        (1 if the camera recorded that day), or an already summarised table
        with columns site_id, days_sampled.

    Returns
    -------
    DataFrame
        Columns site_id, days_sampled (int).

    Notes
    -----
    Repeated rows for the same site and date are counted once, so a day
    logged twice by a camera swap is not double counted.
    """
    if 'days_sampled' in effort.columns:
        _require_columns(effort, [SITE_ID_COL, 'days_sampled'], 'Effort')
        summary = effort.groupby(SITE_ID_COL, as_index=False)['days_sampled'].sum()
    else:
        _require_columns(effort, [SITE_ID_COL, 'date', 'active'], 'Effort')
        active = effort.loc[effort['active'] > 0, [SITE_ID_COL, 'date']].copy()
        active['date'] = _calendar_days(active['date'])
        active = active.drop_duplicates()
        summary = (
            active.groupby(SITE_ID_COL).size()
            .reindex(effort[SITE_ID_COL].unique(), fill_value=0)
            .rename('days_sampled')
            .rename_axis(SITE_ID_COL)
            .reset_index()
        )

    summary['days_sampled'] = summary['days_sampled'].astype(int)
    return summary


def active_detections(detections, effort):
    """
    Keep only detection events recorded on days the camera was active.

    Parameters
    ----------
    detections : DataFrame
        Tagged events with columns site_id, date.
    effort : DataFrame
        Daily effort rows with columns site_id, date, active. A pre-summarised
        effort table (days_sampled only) has no dates to match against, so
        the detections are returned unchanged.

    Returns
    -------
    DataFrame
        The subset of `detections` falling on active site-days, so that
        days detected are always a subset of days sampled.

    Notes
    -----
    Dates are compared as calendar days, so event timestamps match the
    daily effort rows.
    """
    if 'date' not in effort.columns or 'active' not in effort.columns:
        print("Effort table has no daily rows; detections not filtered by camera activity")
        return detections

    _require_columns(detections, [SITE_ID_COL, 'date'], 'Detections')

    active = effort.loc[effort['active'] > 0, [SITE_ID_COL, 'date']].copy()
    active['date'] = _calendar_days(active['date'])
    active = active.drop_duplicates().assign(_active=True)

    events = detections[[SITE_ID_COL]].copy()
    events['date'] = _calendar_days(detections['date'])
    flagged = events.merge(active, on=[SITE_ID_COL, 'date'], how='left')
    keep = flagged['_active'].notna().to_numpy()

    n_dropped = int((~keep).sum())
    if n_dropped:
        print(f"Dropped {n_dropped} detection events on days the camera was inactive")
    return detections[keep]


def summarise_detections(detections, species):
    """
    Summarise tagged detection events for one species.

    Parameters
    ----------
    detections : DataFrame
        Tagged events with columns site_id, date, species, n_images.
    species : str
        Species tag to summarise.

    Returns
    -------
    DataFrame
        Columns site_id, days_detected (distinct calendar days with the species),
        n_images (total images). Only sites with at least one detection
        appear; the join step fills the rest with zeros.
    """
    _require_columns(detections, [SITE_ID_COL, 'date', 'species', 'n_images'], 'Detections')

    events = detections[detections['species'] == species].copy()
    events['date'] = _calendar_days(events['date'])
    if len(events) == 0:
        print(f"Warning: no detections tagged '{species}'")

    summary = events.groupby(SITE_ID_COL).agg(
        days_detected=('date', 'nunique'),
        n_images=('n_images', 'sum'),
    ).reset_index()
    return summary


def summarise_livestock(detections, livestock_species):
    """
    Count the days livestock were detected at each site.

    Parameters
    ----------
    detections : DataFrame
        Tagged events with columns site_id, date, species.
    livestock_species : list of str
        Species tags counted as livestock.

    Returns
    -------
    DataFrame
        Columns site_id, livestock_days (distinct calendar days with any livestock).
    """
    _require_columns(detections, [SITE_ID_COL, 'date', 'species'], 'Detections')

    events = detections[detections['species'].isin(livestock_species)].copy()
    events['date'] = _calendar_days(events['date'])
    summary = (
        events.groupby(SITE_ID_COL)['date'].nunique()
        .rename('livestock_days')
        .reset_index()
    )
    return summary


def join_site_tables(sites, effort_summary, detection_summary, livestock_summary=None):
    """
    Left-join effort and detection summaries onto the site records.

    Parameters
    ----------
    sites : GeoDataFrame or DataFrame
        Site records keyed by site_id.
    effort_summary : DataFrame
        Output of summarise_effort().
    detection_summary : DataFrame
        Output of summarise_detections().
    livestock_summary : DataFrame, optional
        Output of summarise_livestock().

    Returns
    -------
    GeoDataFrame or DataFrame
        Copy of `sites` with integer columns days_sampled, days_detected,
        n_images and livestock_days.

    Notes
    -----
    A site missing from a summary table was not detecting (or not
    recording) anything, so unmatched counts are set to 0 rather than
    left missing. Summary rows for unknown sites are reported and dropped.
    """
    tables = [effort_summary, detection_summary]
    if livestock_summary is not None:
        tables.append(livestock_summary)

    known = set(sites[SITE_ID_COL])
    result = sites.copy()
    for table in tables:
        unknown = sorted(set(table[SITE_ID_COL]) - known)
        if unknown:
            print(f"Warning: {len(unknown)} summary rows have no matching site: {unknown[:5]}")
        result = result.merge(table, on=SITE_ID_COL, how='left')

    for col in COUNT_COLS:
        if col not in result.columns:
            result[col] = 0
        result[col] = result[col].fillna(0).astype(int)

    return result


def detection_proportions(table):
    """
    Convert detection counts to proportions of sampled days.

    Sites with zero sampled days are removed, since their proportion is
    undefined.

    Parameters
    ----------
    table : GeoDataFrame or DataFrame
        Output of join_site_tables().

    Returns
    -------
    GeoDataFrame or DataFrame
        Sampled sites only, with prop_detected and livestock_prop columns.
    """
    unsampled = table['days_sampled'] <= 0
    if unsampled.any():
        print(f"Excluding {unsampled.sum()} sites with zero sampled days: "
              f"{list(table.loc[unsampled, SITE_ID_COL])}")

    result = table[~unsampled].copy()
    result['prop_detected'] = result['days_detected'] / result['days_sampled']
    result['livestock_prop'] = result['livestock_days'] / result['days_sampled']
    return result.reset_index(drop=True)


def check_site_integrity(table):
    """
    Check the joined site table for impossible detection values.

    Parameters
    ----------
    table : DataFrame
        Site table after detection_proportions().

    Returns
    -------
    None

    Raises
    ------
    ValueError
        If counts are missing or negative, a site was detected on more days
        than it was sampled, or a proportion falls outside [0, 1]. The
        message names the offending sites.
    """
    present = [c for c in COUNT_COLS if c in table.columns]
    if table[present].isna().any().any():
        raise ValueError("Site table has missing detection or effort counts")

    negative = (table[present] < 0).any(axis=1)
    if negative.any():
        raise ValueError(f"Negative counts at sites: {list(table.loc[negative, SITE_ID_COL])}")

    over = table['days_detected'] > table['days_sampled']
    if 'livestock_days' in table.columns:
        over |= table['livestock_days'] > table['days_sampled']
    if over.any():
        raise ValueError(
            f"Days detected exceed days sampled at sites: {list(table.loc[over, SITE_ID_COL])}"
        )

    for col in ['prop_detected', 'livestock_prop']:
        if col not in table.columns:
            continue
        values = table[col].to_numpy(dtype=float)
        outside = ~((values >= 0) & (values <= 1))
        if np.any(outside):
            raise ValueError(
                f"{col} outside [0, 1] at sites: {list(table.loc[outside, SITE_ID_COL])}"
            )
