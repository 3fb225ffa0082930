from era.fallback import FALLBACK_HTML, REDIRECT_PLACEHOLDER, fallback_document
from era.llm_parsing import has_root_marker
from era.llm_prompts import QUERY_CONTRACT


def test_fallback_is_a_document():
    assert FALLBACK_HTML.startswith("<!DOCTYPE html>")
    assert has_root_marker(fallback_document())
    assert FALLBACK_HTML.rstrip().endswith("</html>")


def test_fallback_reports_the_prompt_query_parameters():
    for name in ("choice", "decisionTime", "allClicks", "maxScroll"):
        assert f"{name}=" in QUERY_CONTRACT
        assert f"{name}: " in FALLBACK_HTML
    assert "JSON.stringify(allClicks)" in FALLBACK_HTML
    assert f"'{REDIRECT_PLACEHOLDER}?' + params.toString()" in FALLBACK_HTML


def test_fallback_tracks_clicks_and_scroll():
    assert FALLBACK_HTML.count("recordChoice('option") == 3
    for needle in ("e.target.tagName", "e.clientX", "e.clientY", "Date.now() - startTime", "Math.max(maxScroll"):
        assert needle in FALLBACK_HTML
