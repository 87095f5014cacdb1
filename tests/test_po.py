"""Tests for the PO text parser and writer."""

import codecs

import pytest

from textdomain.errors import FormatError
from textdomain.plural import DEFAULT_PLURAL_FORMS
from textdomain.po import POParser, detect_charset, dump_po, escape, unescape


def parse(text: str, source=None):
    return POParser().parse(text.encode("utf-8"), source=source)


# ==============================================================================
# String Literals
# ==============================================================================


class TestStringLiterals:
    """Tests for PO string literal decoding."""

    def test_plain(self):
        assert unescape('"hello"') == "hello"

    def test_simple_escapes(self):
        """Test C escape sequences."""
        assert unescape(r'"a\tb\nc\\d"') == "a\tb\nc\\d"
        assert unescape(r'"say \"hi\""') == 'say "hi"'

    def test_octal_and_hex_escapes(self):
        """Test numeric escapes."""
        assert unescape(r'"\101\102"') == "AB"
        assert unescape(r'"\0"') == "\x00"
        assert unescape(r'"\x41z"') == "Az"

    def test_numeric_escapes_are_bytes(self):
        """Test adjacent numeric escapes decode together in the catalog charset."""
        assert unescape(r'"\303\251t\xc3\xa9"') == "été"
        assert unescape(r'"Caf\351"', charset="latin-1") == "Café"

    @pytest.mark.parametrize("literal", [r'"\xFFFFFFFF"', r'"\x110000"', r'"\x100"', r'"\777"'])
    def test_numeric_escape_out_of_range(self, literal):
        """Test escapes wider than a byte raise FormatError."""
        with pytest.raises(FormatError, match="out of range"):
            unescape(literal, "app.po", 7)

    def test_escaped_bytes_invalid_in_charset(self):
        with pytest.raises(FormatError, match="not valid utf-8"):
            unescape(r'"\377"')

    def test_unknown_escape_keeps_character(self):
        assert unescape(r'"\q"') == "q"

    def test_trailing_whitespace_allowed(self):
        assert unescape('"x"   ') == "x"

    @pytest.mark.parametrize("literal", ['"abc', r'"abc\"', '"abc" x', "abc", r'"\x"'])
    def test_malformed(self, literal):
        """Test broken literals raise FormatError."""
        with pytest.raises(FormatError):
            unescape(literal)

    def test_escape_inverts_unescape(self):
        """Test escaped text decodes to the original."""
        text = 'Tab\there "quoted" back\\slash\nnew line'
        assert unescape(f'"{escape(text)}"') == text


# ==============================================================================
# Parsing
# ==============================================================================


class TestPOParser:
    """Tests for parsing complete PO catalogs."""

    def test_entries(self, german_po):
        """Test singular, plural and context entries."""
        catalog = parse(german_po)

        assert len(catalog) == 6
        assert catalog.format == "po"
        assert catalog.get("Save") == "Speichern"
        assert catalog.get_plural("%d file", "%d files", 1) == "%d Datei"
        assert catalog.get_plural("%d file", "%d files", 2) == "%d Dateien"
        assert catalog.get_context("File", "menu") == "Datei"
        assert catalog.get_plural_context("%d item", "%d items", 5, "menu") == "%d Einträge"

    def test_context_is_part_of_the_key(self, german_po):
        """Test an entry with context does not match a context-free lookup."""
        catalog = parse(german_po)
        assert catalog.get("File") == "File"
        assert ("menu", "File") in catalog
        assert "File" not in catalog

    def test_header(self, german_po):
        """Test the header entry is parsed into metadata."""
        catalog = parse(german_po)

        assert catalog.headers["Project-Id-Version"] == "demo 1.0"
        assert catalog.language == "de"
        assert catalog.charset == "UTF-8"
        assert catalog.nplurals == 2
        assert "" not in catalog

    def test_fuzzy_entries_are_flagged(self, german_po):
        """Test fuzzy entries load with their flag set."""
        catalog = parse(german_po)
        assert catalog.is_fuzzy("Open")
        assert not catalog.is_fuzzy("Save")
        assert catalog.get("Open") == "Öffnen"

    def test_obsolete_entries_ignored(self, german_po):
        assert "Obsolete" not in parse(german_po)

    def test_untranslated_entry_passes_through(self, german_po):
        catalog = parse(german_po)
        assert "Untranslated" in catalog
        assert catalog.get("Untranslated") == "Untranslated"

    def test_multiline_strings(self):
        """Test adjacent literals are concatenated."""
        catalog = parse('msgid ""\n"Hello "\n"World"\nmsgstr ""\n"Hallo "\n"Welt"\n')
        assert catalog.get("Hello World") == "Hallo Welt"

    def test_flags_after_msgstr_start_new_entry(self):
        """Test a comment after msgstr finishes the entry."""
        catalog = parse('msgid "a"\nmsgstr "A"\n#, fuzzy, c-format\nmsgid "b"\nmsgstr "B"\n')
        assert not catalog.is_fuzzy("a")
        assert catalog.is_fuzzy("b")
        assert catalog.entry("b").flags == frozenset({"fuzzy", "c-format"})

    def test_entries_without_blank_lines(self):
        """Test a msgid directly after msgstr starts a new entry."""
        catalog = parse('msgid "a"\nmsgstr "A"\nmsgid "b"\nmsgstr "B"')
        assert catalog.get("a") == "A"
        assert catalog.get("b") == "B"

    def test_msgid_without_msgstr_dropped(self):
        catalog = parse('msgid "a"\n\nmsgid "b"\nmsgstr "B"\n')
        assert len(catalog) == 1
        assert "a" not in catalog

    def test_sparse_plural_forms(self):
        """Test missing msgstr[K] indexes become empty forms."""
        catalog = parse(
            'msgid "x"\nmsgid_plural "xs"\nmsgstr[0] "one"\nmsgstr[2] "many"\n'
        )
        assert catalog.lookup("x") == ("one", "", "many")

    def test_context_with_empty_msgid_is_not_header(self):
        catalog = parse('msgctxt "c"\nmsgid ""\nmsgstr "x"\n')
        assert catalog.header_text == ""
        assert catalog.get_context("", "c") == "x"

    def test_unknown_keywords_skipped(self):
        """Test unknown keywords and their continuations are ignored."""
        catalog = parse('msgid "a"\nmsgfoo "zzz"\n"more"\nmsgstr "b"\n')
        assert catalog.get("a") == "b"

    def test_no_header_uses_default_rule(self):
        catalog = parse('msgid "a"\nmsgstr "b"\n')
        assert catalog.plural_forms == DEFAULT_PLURAL_FORMS
        assert catalog.charset == "utf-8"

    def test_header_only(self, german_po):
        header_only = german_po.split("#: src/main.py:10")[0]
        catalog = parse(header_only)
        assert len(catalog) == 0
        assert catalog.language == "de"

    def test_line_separator_inside_string(self):
        """Test Unicode line separators do not split lines."""
        catalog = parse('msgid "a\u2028b"\nmsgstr "c\u2028d"\n')
        assert catalog.get("a\u2028b") == "c\u2028d"

    def test_crlf_line_endings(self):
        catalog = parse('msgid "a"\r\nmsgstr "b"\r\n')
        assert catalog.get("a") == "b"

    def test_parse_text(self, german_po):
        catalog = POParser().parse_text(german_po)
        assert catalog.get("Save") == "Speichern"

    def test_parse_file(self, tmp_path, german_po):
        path = tmp_path / "app.po"
        path.write_text(german_po, encoding="utf-8")

        catalog = POParser().parse_file(path)
        assert catalog.source == str(path)
        assert catalog.get("Save") == "Speichern"


class TestCharsets:
    """Tests for charset detection and decoding."""

    LATIN1_PO = (
        'msgid ""\n'
        'msgstr ""\n'
        '"Content-Type: text/plain; charset=ISO-8859-1\\n"\n'
        "\n"
        'msgid "Coffee"\n'
        'msgstr "Café"\n'
    )

    def test_detect_charset(self):
        assert detect_charset(self.LATIN1_PO.encode("latin-1")) == "ISO-8859-1"
        assert detect_charset(b'msgid "a"') == "utf-8"

    def test_placeholder_charset_ignored(self):
        data = b'"Content-Type: text/plain; charset=CHARSET\\n"'
        assert detect_charset(data) == "utf-8"

    def test_unknown_charset_falls_back(self):
        data = b'"Content-Type: text/plain; charset=NO-SUCH-CODEC\\n"'
        assert detect_charset(data) == "utf-8"

    def test_latin1_catalog(self):
        catalog = POParser().parse(self.LATIN1_PO.encode("latin-1"))
        assert catalog.get("Coffee") == "Café"

    def test_numeric_escapes_use_declared_charset(self):
        """Test octal escapes are bytes in the header charset."""
        text = self.LATIN1_PO.replace('"Café"', r'"Caf\351"')
        catalog = POParser().parse(text.encode("latin-1"))
        assert catalog.get("Coffee") == "Café"

    def test_utf8_escape_sequence(self):
        catalog = parse('msgid "summer"\nmsgstr "\\303\\251t\\303\\251"\n')
        assert catalog.get("summer") == "été"

    def test_utf8_bom_stripped(self, german_po):
        catalog = POParser().parse(codecs.BOM_UTF8 + german_po.encode("utf-8"))
        assert catalog.get("Save") == "Speichern"

    def test_invalid_bytes(self):
        """Test undecodable bytes raise FormatError with an offset."""
        data = b'msgid "a"\nmsgstr "\xff"\n'
        with pytest.raises(FormatError) as exc_info:
            POParser().parse(data, source="bad.po")
        assert exc_info.value.offset == data.index(b"\xff")


# ==============================================================================
# Syntax Errors
# ==============================================================================


class TestPOErrors:
    """Tests for FormatError reporting."""

    @pytest.mark.parametrize(
        "text,line",
        [
            ('msgstr "x"\n', 1),
            ('"stray"\n', 1),
            ('msgid_plural "xs"\n', 1),
            ('msgid "a"\nmsgstr[x] "b"\n', 2),
            ('msgid "a"\nmsgid_plural "as"\nmsgstr[-1] "b"\n', 3),
            ('msgid "a"\nmsgstr "b\n', 2),
            ('msgid "a"\nmsgstr "b" junk\n', 2),
            ('msgid "a"\nmsgstr "b"\n\n"orphan"\n', 4),
            ('msgid "a"\n!!!\n', 2),
            ('msgid "a"\nmsgstr "\\xFFFFFFFF"\n', 2),
            ('msgid "a"\nmsgstr ""\n"\\x110000"\n', 3),
        ],
    )
    def test_errors_report_line(self, text, line):
        """Test each syntax error names its line."""
        with pytest.raises(FormatError) as exc_info:
            parse(text, source="broken.po")
        assert exc_info.value.line == line
        assert str(exc_info.value).endswith(f"(broken.po:{line})")

    def test_error_without_source(self):
        with pytest.raises(FormatError) as exc_info:
            parse('msgstr "x"\n')
        assert "<bytes>:1" in str(exc_info.value)


# ==============================================================================
# Writer
# ==============================================================================


class TestDumpPO:
    """Tests for rendering catalogs back to PO text."""

    def test_round_trip(self, german_po):
        """Test dumping and re-parsing preserves every entry."""
        original = parse(german_po)
        restored = POParser().parse_text(dump_po(original))

        assert restored.header_text == original.header_text
        assert {e.key: e for e in restored} == {e.key: e for e in original}

    def test_header_first(self, german_po):
        text = dump_po(parse(german_po))
        assert text.startswith('msgid ""\nmsgstr ""\n"Project-Id-Version: demo 1.0\\n"\n')

    def test_flags_written(self, german_po):
        text = dump_po(parse(german_po))
        assert '#, fuzzy\nmsgid "Open"\nmsgstr "Öffnen"' in text

    def test_plural_and_context(self, german_po):
        text = dump_po(parse(german_po))
        assert 'msgctxt "menu"\nmsgid "%d item"\nmsgid_plural "%d items"\nmsgstr[0] "%d Eintrag"' in text

    def test_multiline_value(self):
        catalog = parse('msgid "a"\nmsgstr "line one\\nline two"\n')
        text = dump_po(catalog)
        assert 'msgstr ""\n"line one\\n"\n"line two"' in text
        assert POParser().parse_text(text).get("a") == "line one\nline two"
