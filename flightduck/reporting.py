"""
Reporting Module

Grouped delay summaries and their presentation: text tables for the
terminal and horizontal bar charts built with Plotly.
"""

import logging
import warnings
from pathlib import Path
from typing import Optional, Union

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from tabulate import tabulate

from flightduck.config import CHART_CONFIG
from flightduck.exceptions import EmptyGroupWarning, SchemaMismatch
from flightduck.utils import round_label

logger = logging.getLogger(__name__)


def average_delay_by_group(table: pd.DataFrame, group_key: str, value_column: str,
                           alias: str = 'avg_dep_delay') -> pd.DataFrame:
    """
    Mean of a value column per group, worst first.

    Null values are left out of each mean. Rows with a null group key form
    their own group, as SQL GROUP BY does. A group whose values are all null
    gets a null mean and an EmptyGroupWarning; the summary is still returned.

    Args:
        table: Input rows
        group_key: Column to group by
        value_column: Numeric column to average
        alias: Name of the output mean column

    Returns:
        DataFrame with columns [group_key, alias], sorted by the mean
        descending (stable for ties, null means last)

    Raises:
        SchemaMismatch: If group_key or value_column is missing
    """
    missing = [column for column in (group_key, value_column) if column not in table.columns]
    if missing:
        raise SchemaMismatch('summary input', missing)

    if table.empty:
        return pd.DataFrame({group_key: pd.Series(dtype=table[group_key].dtype),
                             alias: pd.Series(dtype='float64')})

    values = pd.to_numeric(table[value_column], errors='coerce')
    grouped = values.groupby(table[group_key], dropna=False, sort=False, observed=True)
    summary = grouped.mean().rename(alias).reset_index()
    summary.columns = [group_key, alias]

    empty_groups = summary.loc[summary[alias].isna(), group_key].tolist()
    if empty_groups:
        warnings.warn(
            f"No non-null {value_column} values for {group_key} groups {empty_groups}; "
            f"their {alias} is null",
            EmptyGroupWarning,
            stacklevel=2
        )

    summary = summary.sort_values(alias, ascending=False, kind='mergesort', na_position='last')
    return summary.reset_index(drop=True)


def format_summary(summary: pd.DataFrame, decimals: int = 1, tablefmt: str = 'github') -> str:
    """
    Render a summary table as text.

    Args:
        summary: Result table
        decimals: Digits shown for floating point values
        tablefmt: tabulate table format

    Returns:
        Table text
    """
    # tabulate only treats None as missing, not NaN
    rows = summary.astype(object).where(summary.notna(), None)
    return tabulate(rows, headers='keys', tablefmt=tablefmt,
                    showindex=False, floatfmt=f".{decimals}f", missingval='NULL')


def render_bar_chart(summary: pd.DataFrame, label_column: str, value_column: str,
                     title: str, x_label: Optional[str] = None, y_label: Optional[str] = None,
                     output_path: Optional[Union[str, Path]] = None) -> go.Figure:
    """
    Create a horizontal bar chart of a summary table.

    Bars keep the order of the summary rows, with the first row on top.
    Each bar carries its value rounded to one decimal place.

    Args:
        summary: Summary rows, already sorted
        label_column: Column with the bar labels (e.g., carrier name)
        value_column: Column with the bar lengths
        title: Chart title
        x_label: Axis title for the values (default: value_column)
        y_label: Axis title for the labels (default: label_column)
        output_path: Optional .html file to write the chart to

    Returns:
        Plotly Figure
    """
    missing = [column for column in (label_column, value_column) if column not in summary.columns]
    if missing:
        raise SchemaMismatch('chart input', missing)

    decimals = CHART_CONFIG['label_decimals']

    chart_data = pd.DataFrame({
        label_column: summary[label_column].astype(object).where(
            summary[label_column].notna(), CHART_CONFIG['missing_label']).astype(str),
        value_column: pd.to_numeric(summary[value_column], errors='coerce'),
    })
    chart_data['label'] = [round_label(value, decimals) for value in chart_data[value_column]]

    fig = px.bar(
        chart_data,
        x=value_column,
        y=label_column,
        orientation='h',
        text='label',
        title=title,
        template=CHART_CONFIG['template'],
        height=CHART_CONFIG['height']
    )

    fig.update_traces(
        marker_color=CHART_CONFIG['bar_color'],
        textposition='outside',
        textfont_size=CHART_CONFIG['text_size']
    )
    fig.update_layout(
        xaxis_title=x_label or value_column,
        yaxis_title=y_label or label_column,
        yaxis={'categoryorder': 'array',
               'categoryarray': list(reversed(chart_data[label_column].tolist()))}
    )

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.write_html(str(output_path))
        logger.info("Saved chart to %s", output_path)

    return fig
