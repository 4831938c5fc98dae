"""Report renderers for aggregated activity."""

from .csv_export import parse_csv, render_csv
from .summary import render_summary

__all__ = ["parse_csv", "render_csv", "render_summary"]
