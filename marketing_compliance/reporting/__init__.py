"""Result serialisation and HTML reports."""

from .html import render_html_report, write_html_report
from .serialize import serialize_result, serialize_rule

__all__ = ["render_html_report", "serialize_result", "serialize_rule", "write_html_report"]
