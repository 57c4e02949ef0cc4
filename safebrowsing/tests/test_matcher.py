from __future__ import annotations

import logging
import threading
import os
import time

import blocklist.matcher as matcher
from blocklist.matcher import Blocklist


def test_match_returns_first_candidate_in_priority_order(make_store):
    db = make_store(["b.c/", "a.b.c/1/"])
    with Blocklist("goog-malware-hash", db) as bl:
        assert bl.suffix_prefix_match("http://a.b.c/1/2.html?param=1") == "a.b.c/1/"
        assert bl.suffix_prefix_match("http://x.b.c/other") == "b.c/"
        assert bl.suffix_prefix_match("http://example.com/") is None


def test_query_variant_matches(make_store):
    db = make_store(["evil.example.com/login.php?id=7"])
    with Blocklist("goog-phish-hash", db) as bl:
        assert bl.suffix_prefix_match("http://EVIL.example.com/login.php?id=7") == (
            "evil.example.com/login.php?id=7"
        )
        assert bl.suffix_prefix_match("http://evil.example.com/login.php?id=8") is None


def test_match_uses_canonical_form(make_store):
    db = make_store(["google.com/A%1F", "10.1.2.3/"])
    with Blocklist("goog-malware-hash", db) as bl:
        assert bl.suffix_prefix_match("http://google.com/%25%34%31%25%31%46") == "google.com/A%1F"
        assert bl.suffix_prefix_match("http://167838211/anything") == "10.1.2.3/"


def test_match_is_rederivable_from_candidates(make_store):
    db = make_store(["c.d.e.f.g/1/"])
    uri = "http://a.b.c.d.e.f.g/1/2/3.html?x=y"
    with Blocklist("goog-malware-hash", db) as bl:
        matched = bl.suffix_prefix_match(uri)
        assert matched == "c.d.e.f.g/1/"
        assert matched in list(bl.iter_candidates(uri))


def test_stale_store_never_matches(make_store, monkeypatch):
    ts = 1_700_000_000
    db = make_store(["a.com/"], timestamp=ts)
    bl = Blocklist("goog-malware-hash", db)

    monkeypatch.setattr(matcher, "_now", lambda: ts + 1799)
    assert bl.suffix_prefix_match("http://www.a.com/") == "a.com/"

    monkeypatch.setattr(matcher, "_now", lambda: ts + 1800)
    assert bl.suffix_prefix_match("http://www.a.com/") is None
    bl.close()


def test_missing_timestamp_is_stale(make_store, caplog):
    db = make_store(["a.com/"], timestamp=None)
    bl = Blocklist("goog-malware-hash", db)
    with caplog.at_level(logging.WARNING, logger="blocklist.matcher"):
        assert bl.suffix_prefix_match("http://a.com/") is None
    assert "no freshness timestamp" in caplog.text
    bl.close()


def test_missing_store_is_no_match_and_warns_once(tmp_path, caplog):
    bl = Blocklist("goog-malware-hash", str(tmp_path / "missing.db"))
    with caplog.at_level(logging.WARNING, logger="blocklist.matcher"):
        assert bl.suffix_prefix_match("http://a.com/") is None
        assert bl.suffix_prefix_match("http://b.com/") is None
    warnings = [r for r in caplog.records if "unavailable" in r.getMessage()]
    assert len(warnings) == 1


def test_malformed_uri_is_silent_no_match(make_store, caplog):
    db = make_store(["a.com/"])
    bl = Blocklist("goog-malware-hash", db)
    with caplog.at_level(logging.WARNING):
        assert bl.suffix_prefix_match("ftp://a.com/") is None
        assert bl.suffix_prefix_match("not a uri") is None
    assert caplog.records == []
    assert list(bl.iter_candidates("ftp://a.com/")) == []
    bl.close()


def test_replaced_store_is_reopened(make_store):
    db = make_store(["old.com/"])
    bl = Blocklist("goog-malware-hash", db)
    assert bl.suffix_prefix_match("http://old.com/") == "old.com/"

    make_store(["new.com/"])
    later = time.time() + 10
    os.utime(db, (later, later))

    assert bl.suffix_prefix_match("http://old.com/") is None
    assert bl.suffix_prefix_match("http://new.com/") == "new.com/"
    bl.close()


def test_metadata_accessors(make_store):
    db = make_store(
        [],
        timestamp=1_700_000_123,
        major_version=1,
        minor_version=42,
        last_attempt=1_700_000_200,
        client_key=b"\x00ckey",
        wrapped_key=b"wkey",
        errors=3,
    )
    with Blocklist("goog-malware-hash", db, "apikey-123") as bl:
        assert bl.blocklist == "goog-malware-hash"
        assert bl.apikey == "apikey-123"
        assert bl.timestamp() == 1_700_000_123
        assert bl.version() == (1, 42)
        assert bl.last_attempt() == 1_700_000_200
        assert bl.clientkey() == b"\x00ckey"
        assert bl.wrappedkey() == b"wkey"
        assert bl.error_count() == 3


def test_metadata_accessors_without_store(tmp_path):
    bl = Blocklist("goog-malware-hash", str(tmp_path / "missing.db"))
    assert bl.timestamp() is None
    assert bl.clientkey() is None
    assert bl.version() == (None, None)


def test_check_uri_needs_an_open_store(make_store):
    db = make_store(["a.com/"])
    bl = Blocklist("goog-malware-hash", db)
    assert bl.check_uri("a.com/") is False
    bl.timestamp()
    assert bl.check_uri("a.com/") is True
    assert bl.check_uri("b.com/") is False
    bl.close()
    bl.close()
    assert bl.check_uri("a.com/") is False


def test_get_blocklist_reads_environment(make_store, monkeypatch):
    db = make_store(["a.com/"])
    monkeypatch.setenv("SAFEBROWSING_LIST", "goog-black-hash")
    monkeypatch.setenv("SAFEBROWSING_DB", db)
    matcher.reset_blocklist()
    try:
        bl = matcher.get_blocklist()
        assert bl is matcher.get_blocklist()
        assert bl.blocklist == "goog-black-hash"
        assert bl.suffix_prefix_match("http://a.com/") == "a.com/"
    finally:
        matcher.reset_blocklist()


def test_shared_handle_matches_from_another_thread(make_store):
    db = make_store(["a.com/"])
    bl = Blocklist("goog-malware-hash", db)
    assert bl.suffix_prefix_match("http://a.com/") == "a.com/"

    results = []
    worker = threading.Thread(target=lambda: results.append(bl.suffix_prefix_match("http://a.com/")))
    worker.start()
    worker.join()

    assert results == ["a.com/"]
    assert bl.suffix_prefix_match("http://a.com/") == "a.com/"
    bl.close()


def test_unencodable_uri_is_no_match(make_store):
    db = make_store(["a.com/"])
    with Blocklist("goog-malware-hash", db) as bl:
        assert bl.suffix_prefix_match("http://a.com/\ud800") is None
        assert bl.suffix_prefix_match("http://a\udcff.com/") is None
        assert list(bl.iter_candidates("http://a.com/?q=\ud800")) == []
