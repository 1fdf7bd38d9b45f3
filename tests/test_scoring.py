import math

import pytest

from calcfinder.catalog_index import CatalogIndex, CatalogItem
from calcfinder.config import ResolverConfig
from calcfinder.resolver import resolve
from calcfinder.scoring import LexicalScorer, query_tokens, raw_scores

CFG = ResolverConfig()


def _scores(query, index, config=CFG):
    return {hit.identifier: hit.score for hit in LexicalScorer().rank(query, index, config)}


def test_exact_field_weights_add_up():
    index = CatalogIndex.build([
        CatalogItem("psi-to-bar", "PSI to Bar", "Convert psi readings", "conversions", keywords={"psi"}),
    ])
    # keyword 3 + name 2 + description 1
    assert raw_scores(["psi"], index, CFG) == {"psi-to-bar": pytest.approx(6.0)}


def test_repeated_query_tokens_count_each_time(two_item_index):
    assert raw_scores(["mortgage", "mortgage"], two_item_index, CFG) == {
        "mortgage-calculator": pytest.approx(6.0)
    }


def test_length_normalization_uses_square_root(two_item_index):
    scores = _scores("mortgage", two_item_index)
    # name + description hit over five distinct content tokens
    assert scores["mortgage-calculator"] == pytest.approx(3.0 / math.sqrt(5))
    assert scores["bmi-calculator"] == 0.0


def test_near_miss_handles_plurals(two_item_index):
    scores = _scores("mortgages", two_item_index)
    expected = 0.5 * (1 - 1 / 9) / math.sqrt(5)
    assert scores["mortgage-calculator"] == pytest.approx(expected)


def test_near_miss_handles_typos(two_item_index):
    scores = _scores("mortage", two_item_index)
    assert scores["mortgage-calculator"] > 0
    assert scores["bmi-calculator"] == 0.0


def test_near_miss_ignored_when_exact_match_exists():
    index = CatalogIndex.build([
        CatalogItem("loans", "Loan Tool", "loan and loans", "finance"),
    ])
    # "loan" matches exactly; the near miss to "loans" adds nothing
    assert raw_scores(["loan"], index, CFG) == {"loans": pytest.approx(3.0)}


def test_near_miss_capped_by_field_weight():
    cfg = ResolverConfig(description_weight=0.1)
    index = CatalogIndex.build([CatalogItem("x", "Widget", "mortgage", "misc")])
    assert raw_scores(["mortgages"], index, cfg) == {"x": pytest.approx(0.1)}


def test_two_letter_tokens_have_no_near_misses(two_item_index):
    assert raw_scores(["bm"], two_item_index, CFG) == {}


@pytest.fixture
def short_word_index():
    return CatalogIndex.build([
        CatalogItem("psi-to-bar", "PSI to Bar", "Convert pressure readings", "conversions"),
        CatalogItem("tax-calculator", "Tax Calculator", "Estimate income owed", "finance"),
    ])


@pytest.mark.parametrize(
    "query, expected",
    [("bars", "psi-to-bar"), ("taxes", "tax-calculator"), ("psis", "psi-to-bar")],
)
def test_near_miss_handles_plurals_of_three_letter_words(short_word_index, query, expected):
    result = resolve(query, short_word_index)
    assert result.identifier == expected
    assert result.alternates == ()


def test_plural_bonus_of_three_letter_word(short_word_index):
    # "bars" is one edit from the name token "bar"
    assert raw_scores(["bars"], short_word_index, CFG) == {
        "psi-to-bar": pytest.approx(0.5 * (1 - 1 / 4))
    }


def test_near_miss_disabled_with_zero_distance(two_item_index):
    cfg = ResolverConfig(near_miss_max_distance=0)
    assert raw_scores(["mortgages"], two_item_index, cfg) == {}


def test_rank_orders_by_score_then_identifier():
    index = CatalogIndex.build([
        CatalogItem("b-loan", "Loan Tool", "loan payments", "finance"),
        CatalogItem("a-loan", "Loan Tool", "loan payments", "finance"),
    ])
    ranked = LexicalScorer().rank("loan", index, CFG)
    assert [h.identifier for h in ranked] == ["a-loan", "b-loan"]
    assert ranked[0].score == ranked[1].score


def test_rank_prefers_name_length_closest_to_query():
    index = CatalogIndex.build([
        CatalogItem("a-long", "Loan Payment Planner", "tool", "finance"),
        CatalogItem("z-short", "Loan", "payment planner tool", "finance"),
    ])
    ranked = LexicalScorer().rank("loan", index, CFG)
    assert ranked[0].score == pytest.approx(ranked[1].score)
    assert [h.identifier for h in ranked] == ["z-short", "a-long"]


def test_rank_restricted_to_category(sample_index):
    cfg = ResolverConfig(category="health-fitness")
    ranked = LexicalScorer().rank("weight", sample_index, cfg)
    assert ranked
    assert {sample_index.item(h.identifier).category for h in ranked} == {"health-fitness"}


def test_query_tokens_truncates(two_item_index):
    cfg = ResolverConfig(max_query_chars=8)
    assert query_tokens("mortgage payments", cfg) == ["mortgage"]


def test_rank_empty_inputs(two_item_index):
    assert LexicalScorer().rank("", two_item_index, CFG) == []
    assert LexicalScorer().rank("mortgage", CatalogIndex.build([]), CFG) == []


@pytest.mark.parametrize("query", ["body mass", "monthly payments", "calculator", "mortgage weight", "kids bmi"])
def test_adding_query_token_to_keywords_never_lowers_score(two_items, query):
    before = _scores(query, CatalogIndex.build(two_items))
    for token in query.split():
        for pos, item in enumerate(two_items):
            changed = list(two_items)
            changed[pos] = CatalogItem(
                item.identifier, item.display_name, item.description, item.category,
                keywords=set(item.keywords) | {token},
            )
            after = _scores(query, CatalogIndex.build(changed))
            assert after[item.identifier] > before[item.identifier]
