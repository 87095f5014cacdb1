"""Tests for the process-wide convenience functions."""

import pytest

from textdomain import facade
from textdomain.config import DEFAULT_LIBRARY, Settings


FRENCH_PO = r'''msgid ""
msgstr ""
"Content-Type: text/plain; charset=UTF-8\n"
"Plural-Forms: nplurals=2; plural=(n > 1);\n"

msgid "Save"
msgstr "Enregistrer"

msgid "%d file"
msgid_plural "%d files"
msgstr[0] "%d fichier"
msgstr[1] "%d fichiers"
'''


@pytest.fixture(autouse=True)
def clean_facade():
    facade.reset()
    yield
    facade.reset()


@pytest.fixture
def library(tmp_path, write_catalog):
    write_catalog("de/LC_MESSAGES/app.po")
    write_catalog("de/LC_MESSAGES/extras.po", 'msgid "Save"\nmsgstr "Sichern"\n')
    write_catalog("fr/LC_MESSAGES/app.mo", FRENCH_PO)
    return tmp_path


# ==============================================================================
# Configuration
# ==============================================================================


class TestFacadeConfiguration:
    """Tests for library, language and domain defaults."""

    def test_defaults(self):
        assert facade.get_library() == DEFAULT_LIBRARY
        assert facade.get_language() == "en_US"
        assert facade.get_domain() == "default"

    def test_configure(self, library):
        facade.configure(library, "de", "app")

        assert facade.get_library() == str(library)
        assert facade.get_language() == "de"
        assert facade.get_domain() == "app"
        assert facade.get("Save") == "Speichern"

    def test_set_language(self, library):
        facade.configure(library, "de", "app")
        facade.set_language("fr-FR")

        assert facade.get_language() == "fr_FR"
        assert facade.get("Save") == "Enregistrer"

    def test_set_domain(self, library):
        facade.configure(library, "de", "app")
        facade.set_domain("extras")

        assert facade.get_domain() == "extras"
        assert facade.get("Save") == "Sichern"

    def test_set_library(self, library, tmp_path_factory):
        facade.configure(library, "de", "app")
        empty = tmp_path_factory.mktemp("empty")
        facade.set_library(empty)

        assert facade.get_library() == str(empty)
        assert facade.get("Save") == "Save"

    def test_language_context(self, library):
        facade.configure(library, "de", "app")

        with facade.language_context("fr"):
            assert facade.get("Save") == "Enregistrer"
        assert facade.get_language() == "de"
        assert facade.get("Save") == "Speichern"

    def test_configure_from_settings(self, library):
        facade.configure_from_settings(
            Settings(library=library, language="de", domain="app", domains=["extras"])
        )

        assert facade.get("Save") == "Speichern"
        assert facade.get_d("extras", "Save") == "Sichern"
        assert facade.get_registry().get_locale("de").domains() == ["app", "extras"]

    def test_reset(self, library):
        facade.configure(library, "de", "app")
        facade.reset()
        assert facade.get_library() == DEFAULT_LIBRARY
        assert facade.get_registry().languages() == []


# ==============================================================================
# Lookups
# ==============================================================================


class TestFacadeLookups:
    """Tests for the lookup helpers."""

    @pytest.fixture(autouse=True)
    def configured(self, library):
        facade.configure(library, "de", "app")

    def test_get(self):
        assert facade.get("Save") == "Speichern"
        assert facade.get("Unknown %s", "x") == "Unknown x"

    def test_get_n(self):
        assert facade.get_n("%d file", "%d files", 1, 1) == "1 Datei"
        assert facade.get_n("%d file", "%d files", 3, 3) == "3 Dateien"

    def test_get_d(self):
        assert facade.get_d("extras", "Save") == "Sichern"
        assert facade.get_d("nowhere", "Save") == "Save"

    def test_get_nd(self):
        assert facade.get_nd("app", "%d file", "%d files", 2, 2) == "2 Dateien"
        assert facade.get_nd("nowhere", "%d file", "%d files", 2, 2) == "2 files"

    def test_get_c(self):
        assert facade.get_c("File", "menu") == "Datei"

    def test_get_nc(self):
        assert facade.get_nc("%d item", "%d items", 4, "menu", 4) == "4 Einträge"

    def test_get_dc(self):
        assert facade.get_dc("app", "File", "menu") == "Datei"

    def test_get_ndc(self):
        assert facade.get_ndc("app", "%d item", "%d items", 1, "menu", 1) == "1 Eintrag"

    def test_named_interpolation(self):
        assert facade.get("Hello %(name)s", {"name": "Ana"}) == "Hello Ana"

    def test_language_specific_plural_rule(self):
        facade.set_language("fr")
        assert facade.get_n("%d file", "%d files", 0, 0) == "0 fichier"
        assert facade.get_n("%d file", "%d files", 2, 2) == "2 fichiers"


class TestGNUAliases:
    """Tests for the gettext-named functions."""

    @pytest.fixture(autouse=True)
    def configured(self, library):
        facade.configure(library, "de", "app")

    def test_gettext(self):
        assert facade.gettext("Save") == "Speichern"
        assert facade.dgettext("extras", "Save") == "Sichern"

    def test_ngettext_does_not_interpolate(self):
        assert facade.ngettext("%d file", "%d files", 2) == "%d Dateien"
        assert facade.dngettext("app", "%d file", "%d files", 1) == "%d Datei"

    def test_context_aliases(self):
        assert facade.pgettext("menu", "File") == "Datei"
        assert facade.dpgettext("app", "menu", "File") == "Datei"
        assert facade.npgettext("menu", "%d item", "%d items", 2) == "%d Einträge"
        assert facade.dnpgettext("app", "menu", "%d item", "%d items", 1) == "%d Eintrag"
