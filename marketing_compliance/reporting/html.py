"""
HTML rendering of a full analysis result.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

from marketing_compliance.reporting.serialize import serialize_result

REPORT_TEMPLATE = Template(
    r"""
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Marketing Compliance Report</title>
  <style>
    body { font-family: ui-sans-serif,system-ui,-apple-system,Segoe UI,Roboto; margin:24px; line-height:1.45; }
    h2 { margin-top: 2rem; border-bottom: 1px solid #e5e7eb; padding-bottom: 0.25rem; }
    .meta { color: #475569; font-size: 12px; }
    .score { font-size: 32px; font-weight: 700; }
    .green { color: #15803d; } .yellow { color: #b45309; } .red { color: #b91c1c; }
    table { border-collapse: collapse; width: 100%; margin-top: 12px; font-size: 13px; }
    th, td { border: 1px solid #e2e8f0; padding: 6px 8px; text-align: left; vertical-align: top; }
    th { background: #f1f5f9; font-weight: 600; color: #1f2937; }
    .card { background: #f8fafc; border: 1px solid #e5e7eb; border-radius: 12px; padding: 12px; white-space: pre-wrap; margin-top: 8px; }
  </style>
</head>
<body>
  {% set breakdown = result.report.score_breakdown %}
  <h1>Marketing Compliance Report</h1>
  <p class="meta">
    actor={{ result.metadata.actor_id }} · document={{ result.metadata.document_id or 'n/a' }} ·
    analysed={{ result.metadata.analysis_date }} · rules applied={{ result.metadata.rules_applied }} ·
    {{ result.metadata.processing_ms }} ms{% if result.metadata.cache_used %} · cached{% endif %}
  </p>
  <p class="score {{ breakdown.color_code }}">{{ breakdown.total_score }}/100 · {{ breakdown.compliance_level }}</p>
  <p><strong>Risk:</strong> {{ breakdown.risk_indicators.level }} · {{ result.report.summary.risk_assessment }}</p>

  <h2>Key findings</h2>
  <ul>{% for item in result.report.summary.key_findings %}<li>{{ item }}</li>{% endfor %}</ul>

  <h2>Violations</h2>
  {% if result.report.violations %}
  <table>
    <thead><tr><th>Severity</th><th>Kind</th><th>Text</th><th>Rule</th><th>Context</th><th>Confidence</th></tr></thead>
    <tbody>
      {% for v in result.report.violations %}
      <tr>
        <td>{{ v.severity }}</td><td>{{ v.kind }}</td><td>{{ v.text }}</td>
        <td>{{ v.rule.rule_id }} · {{ v.rule.title }}</td><td>{{ v.context }}</td><td>{{ v.confidence | round(2) }}</td>
      </tr>
      {% endfor %}
    </tbody>
  </table>
  {% else %}<p class="meta">No rule violations detected.</p>{% endif %}

  {% if result.report.missing_elements %}
  <h2>Missing elements</h2>
  <ul>{% for item in result.report.missing_elements %}<li>{{ item }}</li>{% endfor %}</ul>
  {% endif %}

  <h2>Category scores</h2>
  <table>
    <thead><tr><th>Category</th><th>Score</th><th>Max</th><th>Violations</th></tr></thead>
    <tbody>
      {% for c in breakdown.category_scores %}
      <tr><td>{{ c.category }}</td><td>{{ c.score }}</td><td>{{ c.max_score | round(1) }}</td><td>{{ c.violations }}</td></tr>
      {% endfor %}
    </tbody>
  </table>

  <h2>Recommendations</h2>
  <p>{{ result.recommendations.overall_approach }}</p>
  <ul>{% for line in result.report.recommendations %}<li>{{ line }}</li>{% endfor %}</ul>
  {% for fix in result.recommendations.fixes %}
  <div class="card"><strong>{{ fix.priority }}</strong> · "{{ fix.original }}" → "{{ fix.suggested }}"
{{ fix.reason }} ({{ fix.reference.document }}, {{ fix.reference.section }})</div>
  {% endfor %}
  {% for alt in result.recommendations.alternatives %}
  <h3>{{ alt.version }} <span class="meta">strength={{ alt.marketing_strength }} risk={{ alt.risk_level }}</span></h3>
  <div class="card">{{ alt.text }}</div>
  {% endfor %}
  {% if result.recommendations.additional_suggestions %}
  <ul>{% for line in result.recommendations.additional_suggestions %}<li>{{ line }}</li>{% endfor %}</ul>
  {% endif %}

  <h2>Citations</h2>
  <ul>
    {% for c in result.report.citations %}
    <li>{{ c.citation }}: {{ c.violations }}{% if c.url %} · <a href="{{ c.url }}">{{ c.url }}</a>{% endif %}</li>
    {% endfor %}
  </ul>

  <h2>Model insights</h2>
  <p class="meta">status={{ result.insights.status }} · score={{ result.insights.score | round(0) }} ·
    tone={{ result.insights.tone.tone }} ({{ result.insights.tone.appropriateness }}){% if result.insights.fallback_used %} · fallback{% endif %}</p>
  <ul>{% for line in result.insights.insights %}<li>{{ line }}</li>{% endfor %}</ul>

  <h2>Checklist</h2>
  <ul>{% for item in result.recommendations.checklist %}<li>{{ item }}</li>{% endfor %}</ul>
</body>
</html>
""",
    autoescape=True,
)


def render_html_report(result: Any) -> str:
    """Render an AnalysisResult to a standalone HTML page."""
    payload: Dict[str, Any] = serialize_result(result)
    return REPORT_TEMPLATE.render(result=payload)


def write_html_report(result: Any, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_html_report(result), encoding="utf-8")
    return path


__all__ = ["render_html_report", "write_html_report"]
