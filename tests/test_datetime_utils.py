"""Tests for the application clock helpers."""

from __future__ import annotations

from datetime import timedelta, timezone

from app.utils import now_in_app_naive_datetime, resolve_timezone


def test_resolve_timezone_accepts_utc_aliases() -> None:
    assert resolve_timezone("UTC") is timezone.utc
    assert resolve_timezone("z") is timezone.utc


def test_resolve_timezone_accepts_offsets() -> None:
    assert resolve_timezone("UTC-05:00").utcoffset(None) == timedelta(hours=-5)
    assert resolve_timezone("GMT+0530").utcoffset(None) == timedelta(hours=5, minutes=30)


def test_now_is_naive() -> None:
    assert now_in_app_naive_datetime().tzinfo is None
