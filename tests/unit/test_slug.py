"""Unit tests for workspace and company slug helpers."""

import pytest

from bizcore.tenancy.slug import derive_company_slug, slugify, transliterate_turkish


class TestDeriveCompanySlug:
    """Tests for derive_company_slug."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Luna Denta Teknoloji", "luna"),
            ("Aydoğanlar Sağlık", "aydoganlar"),
            ("İSTANBUL Medikal", "istanbul"),
            ("Çağ-Tek A.Ş.", "cagtek"),
            ("  Leading   spaces", "leading"),
            ("Acme", "acme"),
            ("3M Türkiye", "3m"),
        ],
    )
    def test_uses_first_word(self, name: str, expected: str):
        """Test the slug is the transliterated first word, alphanumerics only."""
        assert derive_company_slug(name) == expected

    @pytest.mark.parametrize("name", [None, "", "   ", "\t\n"])
    def test_empty_names_give_empty_slug(self, name):
        """Test empty or whitespace-only names derive an empty slug."""
        assert derive_company_slug(name) == ""

    def test_same_first_word_collides(self):
        """Test two companies sharing a first word derive the same slug."""
        assert derive_company_slug("Luna Denta") == derive_company_slug("Luna Optik")

    def test_dotted_capital_i_has_no_combining_mark(self):
        """Test 'İ' becomes a plain 'i' rather than 'i' plus a combining dot."""
        slug = derive_company_slug("İzmir Dental")
        assert slug == "izmir"
        assert slug.isascii()


class TestSlugify:
    """Tests for slugify."""

    def test_slugify_full_name(self):
        assert slugify("Acme Group") == "acme-group"

    def test_slugify_transliterates_and_trims(self):
        assert slugify("  Öz Şirket & Co. ") == "oz-sirket-co"

    def test_transliterate_leaves_ascii_alone(self):
        assert transliterate_turkish("Plain ASCII") == "Plain ASCII"
