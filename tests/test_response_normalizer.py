import json

from era.fallback import FALLBACK_HTML
from era.llm_parsing import (
    EXTRACTORS,
    ContentKind,
    classify,
    extract_fenced_html,
    extract_text,
    has_root_marker,
    normalize,
    slice_document,
)

PAGE = "<!DOCTYPE html>\n<html lang=\"en\"><head><title>Shop</title></head><body><button>Buy</button></body></html>"
REACT = "import React from 'react'\n\nexport default function Page() {\n  return <div>Hi</div>\n}\n"


def test_chat_completion_content_returned_verbatim():
    raw = {"choices": [{"message": {"content": PAGE}}]}
    assert normalize(raw) == PAGE


def test_direct_fields_returned_unchanged():
    for key in ("code", "html", "content"):
        assert normalize({key: PAGE}) == PAGE


def test_direct_field_precedence():
    other = PAGE.replace("Shop", "Other")
    assert extract_text({"html": other, "code": PAGE}) == PAGE
    assert extract_text({"content": other, "html": PAGE}) == PAGE
    assert extract_text({"content": PAGE, "choices": [{"message": {"content": other}}]}) == PAGE


def test_blank_fields_fall_through_to_next_extractor():
    raw = {"code": "  ", "html": None, "choices": [{"message": {"content": PAGE}}]}
    assert normalize(raw) == PAGE


def test_chat_content_parts_are_joined():
    raw = {"choices": [{"message": {"content": [{"type": "text", "text": PAGE[:20]}, {"type": "text", "text": PAGE[20:]}]}}]}
    assert normalize(raw) == PAGE


def test_json_text_body_is_decoded():
    assert normalize(json.dumps({"html": PAGE})) == PAGE


def test_plain_text_body_is_used():
    assert normalize(PAGE) == PAGE


def test_no_extractable_text_returns_fallback():
    for raw in (None, {}, {"choices": []}, {"choices": [{"message": {}}]}, {"data": PAGE}, "", 42, [PAGE]):
        assert normalize(raw) == FALLBACK_HTML


def test_foreign_framework_without_converter_returns_fallback():
    assert normalize({"code": REACT}) == FALLBACK_HTML


def test_foreign_framework_converted():
    seen = []

    def convert(code):
        seen.append(code)
        return {"html": PAGE}

    assert normalize({"code": REACT}, convert=convert) == PAGE
    assert seen == [REACT]


def test_foreign_framework_converter_errors_fall_back():
    def boom(code):
        raise RuntimeError("convert endpoint down")

    assert normalize({"code": REACT}, convert=boom) == FALLBACK_HTML
    assert normalize({"code": REACT}, convert=lambda code: {}) == FALLBACK_HTML
    assert normalize({"code": REACT}, convert=lambda code: {"code": REACT}) == FALLBACK_HTML


def test_converted_chat_answer_with_fence_is_unwrapped():
    answer = "Here you go:\n\n```html\n" + PAGE + "\n```\n"
    out = normalize({"code": REACT}, convert=lambda code: {"choices": [{"message": {"content": answer}}]})
    assert out == PAGE


def test_prose_around_fenced_document_is_unwrapped():
    text = "Sure! Here is the page.\n```html\n" + PAGE + "\n```\nLet me know if you need changes."
    assert normalize({"content": text}) == PAGE


def test_fragment_without_document_root_returns_fallback():
    assert normalize({"html": "<div>just a fragment</div>"}) == FALLBACK_HTML
    assert normalize({"content": "```html\n<div>fragment</div>\n```"}) == FALLBACK_HTML


def test_classify():
    assert classify(PAGE) is ContentKind.PLAIN_MARKUP
    assert classify(REACT) is ContentKind.FOREIGN_FRAMEWORK
    assert classify("export default App") is ContentKind.FOREIGN_FRAMEWORK
    assert classify("<div>hi</div>") is ContentKind.UNRECOGNIZED
    assert classify("") is ContentKind.UNRECOGNIZED
    # framework markers win over an html root
    assert classify(PAGE + "\n<script>import React from 'react'</script>") is ContentKind.FOREIGN_FRAMEWORK


def test_extract_fenced_html_skips_blocks_without_document():
    text = "```html\n<div>a</div>\n```\n\n```HTML\n" + PAGE + "\n```"
    assert extract_fenced_html(text) == PAGE
    assert extract_fenced_html("```js\n" + PAGE + "\n```") is None


def test_normalize_always_returns_a_document():
    samples = [None, "", "garbage", {"code": REACT}, {"html": "<p>x</p>"}, {"choices": "bad"}, b"\xff\xfe", PAGE]
    for raw in samples:
        out = normalize(raw)
        assert isinstance(out, str) and has_root_marker(out)


def test_extractors_are_ordered():
    names = [getattr(e, "__name__", "") for e in EXTRACTORS]
    assert names[:3] == ["extract_code", "extract_html", "extract_content"]
    assert names[3] == "extract_chat_content"


def test_unlabelled_fence_in_chat_answer_is_unwrapped():
    answer = "Here is your page:\n```\n" + PAGE + "\n```\nEnjoy!"
    assert normalize({"choices": [{"message": {"content": answer}}]}) == PAGE
    assert extract_fenced_html("```\n" + PAGE + "\n```") == PAGE


def test_prose_around_unfenced_document_is_sliced():
    assert normalize({"content": "Sure! " + PAGE + " Enjoy"}) == PAGE
    upper = PAGE.replace("</html>", "</HTML>")
    assert normalize("Here you go:\n" + upper + "\n\nThanks") == upper


def test_slice_document_spans_to_last_closing_tag():
    nested = PAGE.replace("<button>", "<iframe srcdoc='<html></html>'></iframe><button>")
    assert slice_document("intro " + nested + " outro") == nested
    assert slice_document("no document here") is None
    assert slice_document("Sure! <!DOCTYPE html><html><body>cut off") is None


def test_prose_with_unterminated_document_returns_fallback():
    assert normalize({"content": "Sure! <!DOCTYPE html><html><body>cut off"}) == FALLBACK_HTML
    assert normalize({"content": "The <html> element wraps a page."}) == FALLBACK_HTML
