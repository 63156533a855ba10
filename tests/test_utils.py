"""
Timestamps and text helpers.
"""
import re
from datetime import datetime, timezone

from kubekorea.common.utils import now_iso, parse_iso, strip_html


class TestNowIso:

    def test_format_has_milliseconds_and_z_suffix(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", now_iso())

    def test_never_earlier_than_call_time(self):
        for _ in range(200):
            before = datetime.now(timezone.utc)
            assert parse_iso(now_iso()) >= before


class TestStripHtml:

    def test_tags_removed_and_truncated(self):
        assert strip_html("<p>Hello   <b>world</b></p>") == "Hello world"
        assert strip_html("<p>abcdef</p>", max_length=3) == "abc…"
