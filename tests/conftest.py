"""Shared fixtures for catalog tests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pytest

from textdomain.log import LOGGER_NAME
from textdomain.mo import compile_mo
from textdomain.po import POParser


GERMAN_PO = r'''# German translations for the demo app.
msgid ""
msgstr ""
"Project-Id-Version: demo 1.0\n"
"Language: de\n"
"MIME-Version: 1.0\n"
"Content-Type: text/plain; charset=UTF-8\n"
"Content-Transfer-Encoding: 8bit\n"
"Plural-Forms: nplurals=2; plural=(n != 1);\n"

#: src/main.py:10
msgid "Save"
msgstr "Speichern"

msgid "%d file"
msgid_plural "%d files"
msgstr[0] "%d Datei"
msgstr[1] "%d Dateien"

msgctxt "menu"
msgid "File"
msgstr "Datei"

msgctxt "menu"
msgid "%d item"
msgid_plural "%d items"
msgstr[0] "%d Eintrag"
msgstr[1] "%d Einträge"

#, fuzzy
msgid "Open"
msgstr "Öffnen"

msgid "Untranslated"
msgstr ""

#~ msgid "Obsolete"
#~ msgstr "Veraltet"
'''


RUSSIAN_PO = r'''msgid ""
msgstr ""
"Content-Type: text/plain; charset=UTF-8\n"
"Plural-Forms: nplurals=3; plural=(n%10==1 && n%100!=11 ? 0 : n%10>=2 && n%10<=4 && (n%100<10 || n%100>=20) ? 1 : 2);\n"

msgid "%d file"
msgid_plural "%d files"
msgstr[0] "%d файл"
msgstr[1] "%d файла"
msgstr[2] "%d файлов"
'''


@pytest.fixture
def german_po() -> str:
    return GERMAN_PO


@pytest.fixture
def russian_po() -> str:
    return RUSSIAN_PO


@pytest.fixture
def german_mo() -> bytes:
    return compile_mo(POParser().parse(GERMAN_PO.encode("utf-8")))


@pytest.fixture
def write_catalog(tmp_path: Path) -> Callable[..., Path]:
    """Write a PO (or compiled MO) catalog under the temporary library.

    Usage: write_catalog("fr/LC_MESSAGES/app.mo", po_text)
    """

    def _write(relative: str, po_text: str = GERMAN_PO) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix == ".mo":
            path.write_bytes(compile_mo(POParser().parse(po_text.encode("utf-8"))))
        else:
            path.write_text(po_text, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_textdomain_logger():
    """Drop handlers installed by configure_logging (the CLI calls it)."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_textdomain_handler", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
