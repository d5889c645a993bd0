"""Counter HTML page."""

from __future__ import annotations

from flask import Blueprint, render_template

counter_pages_bp = Blueprint("counter_pages", __name__)


@counter_pages_bp.get("/")
def index():
    return render_template("index.html", poll_interval_ms=5000)
