"""HTML templates for the printable article, post and thread layouts."""

from __future__ import annotations

from datetime import datetime, timezone

from jinja2 import DictLoader, Environment, select_autoescape

_BASE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>{% block title %}{% endblock %}</title>
  <style>
    * { box-sizing: border-box; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
      max-width: 800px;
      margin: 0 auto;
      padding: 20px;
      color: #14171a;
      background: #ffffff;
    }
    a { color: #1da1f2; text-decoration: none; }
    img { max-width: 100%; height: auto; border-radius: 8px; margin-bottom: 10px; }
    .date, .muted { font-size: 14px; color: #666; }
    .footer {
      margin-top: 40px;
      padding-top: 20px;
      border-top: 1px solid #e1e8ed;
      font-size: 12px;
      color: #666;
    }
    {% block style %}{% endblock %}
  </style>
</head>
<body>
{% block body %}{% endblock %}
  <div class="footer">
    <p>Original source: <a href="{{ source_url }}">{{ source_url }}</a></p>
  </div>
</body>
</html>
"""

_ARTICLE = """{% extends "base.html" %}
{% block title %}{{ content.title }}{% endblock %}
{% block style %}
    h1 { font-size: 28px; margin-bottom: 10px; line-height: 1.3; }
    .author { font-size: 14px; color: #666; margin-bottom: 6px; }
    .content { font-size: 16px; line-height: 1.6; margin-top: 30px; }
    .content img { margin: 20px 0; }
    .content p { margin-bottom: 15px; }
{% endblock %}
{% block body %}
  <div class="header">
    <h1>{{ content.title }}</h1>
    <div class="author">By {{ content.author }}</div>
    <div class="date">{{ content.captured_at | format_date }}</div>
  </div>
  <div class="content">
    {{ content.body_html | safe }}
  </div>
{% endblock %}
"""

_POST_CARD = """{% macro post_card(post, highlight=False) %}
  <div class="post{% if highlight %} first{% endif %}">
    <div class="post-header">
      <div class="post-author">{{ post.author }}</div>
      <div class="date">{{ post.posted_at | format_date }}</div>
    </div>
    <div class="post-text">{{ post.text }}</div>
    {% if post.images %}
    <div class="post-images">
      {% for image in post.images %}
      <img src="{{ image.src }}" alt="{{ image.alt }}">
      {% endfor %}
    </div>
    {% endif %}
  </div>
{% endmacro %}
"""

_POST_STYLE = """
    .post { margin-bottom: 20px; padding: 15px; border: 1px solid #e1e8ed; border-radius: 12px; }
    .post.first { border-color: #1da1f2; border-width: 2px; }
    .post-header { display: flex; justify-content: space-between; margin-bottom: 10px; }
    .post-author { font-weight: bold; font-size: 15px; white-space: pre-line; }
    .post-text { font-size: 16px; line-height: 1.5; margin-bottom: 10px; white-space: pre-wrap; }
"""

_POST = """{% extends "base.html" %}
{% from "card.html" import post_card %}
{% block title %}Post by {{ content.author }}{% endblock %}
{% block style %}""" + _POST_STYLE + """{% endblock %}
{% block body %}
{{ post_card(content) }}
{% endblock %}
"""

_THREAD = """{% extends "base.html" %}
{% from "card.html" import post_card %}
{% block title %}Thread by {{ content.author }}{% endblock %}
{% block style %}""" + _POST_STYLE + """
    .thread-header { margin-bottom: 30px; }
    .thread-title { font-size: 24px; font-weight: bold; margin-bottom: 5px; }
{% endblock %}
{% block body %}
  <div class="thread-header">
    <div class="thread-title">Thread by {{ content.author }}</div>
    <div class="muted">{{ content.post_count }} posts · {{ content.captured_at | format_date }}</div>
  </div>
  {% for post in content.posts %}
  {{ post_card(post, highlight=loop.first) }}
  {% endfor %}
{% endblock %}
"""

FOOTER_TEMPLATE = """
<div style="font-size: 8px; text-align: center; width: 100%; color: #666; padding: 0 15mm;">
  <span>Source: {{ source_url }}</span> |
  <span class="pageNumber"></span>/<span class="totalPages"></span>
</div>
"""


def format_date(value: datetime) -> str:
    if value.tzinfo is None:
        return value.strftime("%B %d, %Y %H:%M")
    return value.astimezone(timezone.utc).strftime("%B %d, %Y %H:%M UTC")


def build_environment() -> Environment:
    env = Environment(
        loader=DictLoader({
            "base.html": _BASE,
            "card.html": _POST_CARD,
            "article.html": _ARTICLE,
            "post.html": _POST,
            "thread.html": _THREAD,
            "footer.html": FOOTER_TEMPLATE,
        }),
        autoescape=select_autoescape(default_for_string=True, default=True),
    )
    env.filters["format_date"] = format_date
    return env
