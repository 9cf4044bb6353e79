"""
PDF report rendering.
"""

from .renderer import PillowReportRenderer, render_report_pages, render_report_pdf

__all__ = ["PillowReportRenderer", "render_report_pages", "render_report_pdf"]
