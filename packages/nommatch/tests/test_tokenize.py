"""Tests for normalization and typed tokenization."""

from nommatch.config import EngineConfig
from nommatch.tokenize import (
    is_article_token,
    is_brand_token,
    is_size_token,
    normalize_query,
    normalize_text,
    tokenize,
)


def test_normalize_text_dimension_separators():
    assert normalize_text("Лист 1000х2000х10") == "Лист 1000x2000x10"
    assert normalize_text("Плита 600×1200") == "Плита 600x1200"
    assert normalize_text("Брус 50*100") == "Брус 50x100"


def test_normalize_text_decimal_comma():
    assert normalize_text("Труба 57х3,5") == "Труба 57x3.5"


def test_normalize_query_casefolds_and_strips_punctuation():
    assert normalize_query("  Пеноплэкс,  50мм. ") == "пеноплэкс 50мм"
    assert normalize_query("(Кабель) «ВВГнг»") == "кабель ввгнг"


def test_normalize_keeps_inner_hyphen_and_slash():
    assert normalize_query("BVR-R 1/2") == "bvr-r 1/2"


def test_size_tokens():
    assert is_size_token("50мм")
    assert is_size_token("1000x2000x10")
    assert is_size_token("57x3.5")
    assert is_size_token("dn32")
    assert is_size_token("ду50")
    assert not is_size_token("м500x")
    assert not is_size_token("кран")


def test_article_tokens():
    assert is_article_token("065b8310r")
    assert is_article_token("гост10704")
    assert not is_article_token("a1")
    assert not is_article_token("12345")
    assert not is_article_token("кран")


def test_brand_tokens():
    assert is_brand_token("Ридан")
    assert is_brand_token("REHAU")
    assert is_brand_token("ВВГнг")
    assert is_brand_token("BVR-R")
    assert not is_brand_token("Кран")
    assert not is_brand_token("ВВГнг", shouting=True)


class TestTokenize:
    def test_technical_query_buckets(self):
        tokens = tokenize("Кран шаровой DN32 065B8310R Ридан")
        assert tokens.material == ("кран", "шаровой")
        assert tokens.size == ("dn32",)
        assert tokens.brand == ("ридан",)
        assert tokens.article == ("065b8310r",)

    def test_ignored_terms_removed(self):
        tokens = tokenize("бетон м3")
        assert tokens.material == ("бетон",)
        assert tokens.all_tokens() == ("бетон",)

    def test_ignored_terms_case_insensitive(self):
        tokens = tokenize("Бетон М3 ШТ")
        assert tokens.all_tokens() == ("бетон",)

    def test_custom_ignored_terms(self):
        config = EngineConfig(ignored_terms=("товарный",))
        assert tokenize("Бетон товарный", config).material == ("бетон",)

    def test_short_words_dropped(self):
        tokens = tokenize("Лист 1000х2000х10 мм")
        assert tokens.material == ("лист",)
        assert tokens.size == ("1000x2000x10",)

    def test_min_word_length(self):
        config = EngineConfig(min_word_length=6)
        assert tokenize("Кран шаровой", config).material == ("шаровой",)

    def test_shape_brand_and_size(self):
        tokens = tokenize("Кабель ВВГнг 3х2,5")
        assert tokens.material == ("кабель",)
        assert tokens.brand == ("ввгнг",)
        assert tokens.size == ("3x2.5",)

    def test_all_caps_query_has_no_shape_brands(self):
        tokens = tokenize("КАБЕЛЬ ВВГНГ")
        assert tokens.brand == ()
        assert tokens.material == ("кабель", "ввгнг")

    def test_duplicates_removed(self):
        assert tokenize("бетон Бетон БЕТОН").material == ("бетон",)

    def test_empty_input(self):
        assert tokenize("").is_empty()
        assert tokenize("   ").is_empty()
        assert tokenize("т").is_empty()
