# charts.py
"""Plotly figures for the dashboard and reports."""

from typing import Dict, List

import plotly.graph_objects as go


def turnout_pie(slices: List[Dict], title: str = "Paddy Turnout") -> go.Figure:
    """Donut of ``turnout_breakdown`` slices; labels carry the percentage."""
    fig = go.Figure(
        data=[
            go.Pie(
                labels=[s["name"] for s in slices],
                values=[round(s["value"], 3) for s in slices],
                hole=0.45,
                marker=dict(colors=[s["color"] for s in slices]),
                texttemplate="<b>%{percent:.1%}</b>",
                textposition="inside",
                hovertemplate="%{label}: %{value:,.3f} Qtls<extra></extra>",
                sort=False,
            )
        ]
    )
    fig.update_layout(
        title_text=title,
        margin=dict(t=40, b=20, l=0, r=0),
        legend=dict(orientation="h", y=-0.1),
    )
    return fig


def godown_lifting_bar(godowns: List[Dict]) -> go.Figure:
    """Lifted against pending paddy per godown, stacked."""
    names = [g["godown"] for g in godowns]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Lifted",
        x=names,
        y=[g["lifted"] for g in godowns],
        marker_color="#16a34a",
    ))
    fig.add_trace(go.Bar(
        name="Pending",
        x=names,
        y=[max(g["pending"], 0.0) for g in godowns],
        marker_color="#f59e0b",
    ))
    fig.update_layout(
        barmode="stack",
        yaxis_title="Qtls",
        template="plotly_white",
        margin=dict(t=30, b=20, l=0, r=0),
    )
    return fig
