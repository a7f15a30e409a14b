"""Tests for marker extraction from Python and JavaScript/TypeScript sources."""
from tombstone_analyzer.analyzer.extractor import MarkerExtractor
from tombstone_analyzer.analyzer.parser import LanguageParser, first_error_line
from tombstone_analyzer.identity import compute_marker_id

PYTHON_SOURCE = b"""from markers import tombstone


def f():
    tombstone("2024-01-01", "alice")
    return 1


class Billing:
    def charge(self):
        tombstone("2023-05-01")

    def outer(self):
        def inner():
            tombstone("nested", 42)
        return inner


tombstone("module-level")
print("not a marker")
"""

JS_SOURCE = b"""function legacy() {
  tombstone('2024-01-01');
}

class Cart {
  total() {
    tombstone("2022-02-02", `jira-12`);
  }
}

const handler = () => { markers.tombstone('arrow'); };
"""


def _extract(source, language='python', file_path='app/module.py', names=('tombstone',)):
    parser = LanguageParser(language)
    tree = parser.parse_source(source)
    extractor = MarkerExtractor(language, names)
    return extractor.extract_markers(tree, source, file_path)


class TestPythonMarkers:
    """Python call sites, scopes and metadata."""

    def test_finds_every_marker_in_source_order(self):
        markers = _extract(PYTHON_SOURCE)
        lines = [marker.line_number for marker in markers]
        assert lines == [5, 11, 15, 19], f"Unexpected marker lines: {lines}"

    def test_enclosing_function_is_qualified_name(self):
        markers = _extract(PYTHON_SOURCE)
        scopes = [marker.enclosing_function for marker in markers]
        assert scopes == ['f', 'Billing.charge', 'Billing.outer.<locals>.inner', ''], \
            f"Qualified names should follow __qualname__, got {scopes}"

    def test_literal_arguments_become_metadata(self):
        markers = _extract(PYTHON_SOURCE)
        assert markers[0].metadata == ('2024-01-01', 'alice')
        # Non-string literals are rendered with repr()
        assert markers[2].metadata == ('nested', '42')

    def test_non_literal_argument_keeps_source_text(self):
        source = b"def f():\n    tombstone(TICKET, 'x')\n"
        marker = _extract(source)[0]
        assert marker.metadata == ('TICKET', 'x')

    def test_attribute_call_is_recognised(self):
        source = b"import markers\n\ndef f():\n    markers.tombstone('2024-01-01')\n"
        markers = _extract(source)
        assert len(markers) == 1
        assert markers[0].function_name == 'tombstone'
        assert markers[0].line_number == 4

    def test_other_functions_are_ignored(self):
        source = b"def f():\n    print('2024-01-01')\n    log.info('x')\n"
        assert _extract(source) == []

    def test_custom_function_names(self):
        source = b"def f():\n    vampire('a')\n    tombstone('b')\n"
        markers = _extract(source, names=('vampire',))
        assert [m.function_name for m in markers] == ['vampire']

    def test_id_matches_identity_inputs(self):
        marker = _extract(PYTHON_SOURCE)[1]
        expected = compute_marker_id('tombstone', ('2023-05-01',), 'app/module.py', 'Billing.charge')
        assert marker.id == expected

    def test_id_is_stable_across_runs_and_line_shifts(self):
        first = _extract(PYTHON_SOURCE)
        shifted = _extract(b"\n\n\n" + PYTHON_SOURCE)
        assert [m.id for m in first] == [m.id for m in _extract(PYTHON_SOURCE)]
        assert [m.id for m in first] == [m.id for m in shifted], \
            "Inserting lines above a marker must not change its identity"
        assert [m.line_number for m in shifted] == [m.line_number + 3 for m in first]

    def test_id_depends_on_file_path(self):
        a = _extract(PYTHON_SOURCE, file_path='a.py')[0]
        b = _extract(PYTHON_SOURCE, file_path='b.py')[0]
        assert a.id != b.id

    def test_decorated_function_scope(self):
        source = b"@cached\ndef report():\n    tombstone('2024')\n"
        marker = _extract(source)[0]
        assert marker.enclosing_function == 'report'


class TestJavaScriptMarkers:
    """JavaScript and TypeScript call sites."""

    def test_js_markers_and_scopes(self):
        markers = _extract(JS_SOURCE, language='javascript', file_path='web/cart.js')
        assert [m.line_number for m in markers] == [2, 7, 11]
        assert [m.enclosing_function for m in markers] == ['legacy', 'Cart.total', 'handler']

    def test_js_string_metadata(self):
        markers = _extract(JS_SOURCE, language='javascript', file_path='web/cart.js')
        assert markers[0].metadata == ('2024-01-01',)
        assert markers[1].metadata == ('2022-02-02', 'jira-12')
        assert markers[2].metadata == ('arrow',)

    def test_typescript(self):
        source = b"export function pay(amount: number): void {\n  tombstone('2021-09-09');\n}\n"
        markers = _extract(source, language='typescript', file_path='pay.ts')
        assert len(markers) == 1
        assert markers[0].enclosing_function == 'pay'
        assert markers[0].metadata == ('2021-09-09',)


class TestParser:
    """Language selection and syntax error detection."""

    def test_from_file_extension(self):
        assert LanguageParser.from_file_extension('a.py').language == 'python'
        assert LanguageParser.from_file_extension('a.tsx').language == 'tsx'
        assert LanguageParser.from_file_extension('README.md') is None

    def test_clean_source_has_no_error_line(self):
        tree = LanguageParser('python').parse_source(PYTHON_SOURCE)
        assert first_error_line(tree) is None

    def test_syntax_error_is_detected(self):
        tree = LanguageParser('python').parse_source(b"x = 1\ndef broken(:\n    pass\n")
        line = first_error_line(tree)
        assert line is not None, "Broken source must report an error line"
        assert line >= 2
