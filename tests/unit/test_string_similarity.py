import pytest

from app.similarity.string_similarity import (
    common_substrings,
    composite_similarity,
    cosine_similarity,
    french_soundex,
    fuzzy_contains,
    jaccard_similarity,
    levenshtein_distance,
    normalize,
    phonetic_match,
    similarity,
)


class TestLevenshteinDistance:
    @pytest.mark.parametrize("text", ["", "a", "lait demi écrémé", "pommes golden"])
    def test_identical_strings_have_zero_distance(self, text: str) -> None:
        assert levenshtein_distance(text, text) == 0

    def test_empty_against_word_is_word_length(self) -> None:
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3

    def test_single_insertion(self) -> None:
        assert levenshtein_distance("pomme golden", "pommes golden") == 1

    def test_classic_example(self) -> None:
        assert levenshtein_distance("kitten", "sitting") == 3

    def test_is_symmetric(self) -> None:
        assert levenshtein_distance("baguette", "bagette") == levenshtein_distance(
            "bagette", "baguette"
        )


class TestSimilarity:
    def test_two_empty_strings_are_identical(self) -> None:
        assert similarity("", "") == 1.0

    def test_completely_different(self) -> None:
        assert similarity("abc", "xyz") == 0.0

    @pytest.mark.parametrize(
        ("a", "b"),
        [("lait", "laid"), ("", "pain"), ("yaourt nature", "yaourts"), ("eau", "jus d'orange")],
    )
    def test_is_symmetric(self, a: str, b: str) -> None:
        assert similarity(a, b) == similarity(b, a)

    def test_one_edit_over_length(self) -> None:
        assert similarity("pain", "bain") == pytest.approx(0.75)


class TestNormalize:
    def test_strips_diacritics_and_lowercases(self) -> None:
        assert normalize("Crème Brûlée") == "creme brulee"

    def test_punctuation_becomes_space_and_whitespace_collapses(self) -> None:
        assert normalize("  LAIT/DEMI-ÉCRÉMÉ   1L ") == "lait demi ecreme 1l"

    def test_folds_ligatures(self) -> None:
        assert normalize("BŒUF Œufs Ex-æquo") == "boeuf oeufs ex aequo"

    def test_empty_string(self) -> None:
        assert normalize("") == ""


class TestSetSimilarities:
    def test_jaccard_of_same_words_is_one(self) -> None:
        assert jaccard_similarity("pommes golden", "Golden POMMES") == 1.0

    def test_jaccard_partial_overlap(self) -> None:
        assert jaccard_similarity("lait entier", "lait demi") == pytest.approx(1 / 3)

    def test_cosine_of_disjoint_words_is_zero(self) -> None:
        assert cosine_similarity("pain", "lait") == 0.0

    def test_cosine_of_empty_is_zero(self) -> None:
        assert cosine_similarity("", "lait") == 0.0

    def test_composite_of_identical_is_one(self) -> None:
        assert composite_similarity("Beurre doux", "beurre doux") == pytest.approx(1.0)

    def test_composite_is_weighted_blend(self) -> None:
        expected = 0.4 * similarity("lait entier", "lait demi") + 0.3 * (1 / 3) + 0.3 * 0.5
        assert composite_similarity("lait entier", "lait demi") == pytest.approx(expected)


class TestFuzzyHelpers:
    def test_fuzzy_contains_exact_substring(self) -> None:
        assert fuzzy_contains("CARREFOUR MARKET PARIS", "market")

    def test_fuzzy_contains_tolerates_typo(self) -> None:
        assert fuzzy_contains("carrefour markte paris", "market", tolerance=0.6)

    def test_fuzzy_contains_rejects_unrelated(self) -> None:
        assert not fuzzy_contains("boulangerie", "market")

    def test_common_substrings_longest_first(self) -> None:
        shared = common_substrings("golden", "pomme golden", min_length=3)
        assert shared[0] == "golden"

    def test_common_substrings_respects_min_length(self) -> None:
        assert all(len(s) >= 4 for s in common_substrings("abcdef", "xbcdefy", min_length=4))


class TestFrenchPhonetics:
    def test_key_has_four_characters(self) -> None:
        key = french_soundex("pomme")
        assert len(key) == 4
        assert key[0] == "P"

    def test_empty_input(self) -> None:
        assert french_soundex("") == ""

    def test_ph_sounds_like_f(self) -> None:
        assert french_soundex("phare")[1:] == french_soundex("fare")[1:]

    def test_phonetic_match_identical_words(self) -> None:
        assert phonetic_match("Baguette", "baguette")

    def test_phonetic_match_rejects_different_words(self) -> None:
        assert not phonetic_match("pain", "lait")
