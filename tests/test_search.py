import pytest

from recipe_pipeline.database import session_scope
from recipe_pipeline.exceptions import BadQuery
from recipe_pipeline.search import SimilaritySearch, normalize_query, trigram_similarity, trigrams


def test_normalize_query():
    assert normalize_query(" Tomatoes, ,Fresh Strawberries ,pesto") == ["tomato", "fresh strawberry", "pesto"]


@pytest.mark.parametrize("raw", ["", "  ", ",,", " , ", None])
def test_empty_query_is_bad(raw):
    with pytest.raises(BadQuery):
        normalize_query(raw)


def test_trigrams_are_padded_per_word():
    assert trigrams("Pita") == {"  p", " pi", "pit", "ita", "ta "}


def test_trigram_similarity_properties():
    assert trigram_similarity("pita", "pita breads") == 1.0
    assert trigram_similarity("Pita Breads", "pita") == trigram_similarity("pita", "pita breads")
    # only the leading "  c" trigram is shared: 1/7
    assert trigram_similarity("chocolate", "couscous") == pytest.approx(1 / 7)
    assert trigram_similarity("", "pita") == 0.0


def test_pesto_pita_finds_the_pizza(seeded):
    with session_scope(seeded) as db:
        results = SimilaritySearch(threshold=0.2).search(db, "pesto,pita")

        assert [(r.recipe.title, r.matched_count) for r in results] == [("Pesto Pita Pizza", 2)]


def test_unrelated_query_is_empty_not_an_error(seeded):
    with session_scope(seeded) as db:
        assert SimilaritySearch(threshold=0.2).search(db, "chocolate,strawberry") == []


def test_results_are_ranked_by_distinct_matches(seeded):
    with session_scope(seeded) as db:
        results = SimilaritySearch(threshold=0.2).search(db, "tomatoes, broth, flour")

    assert results[0].recipe.title == "Tomato Soup"
    assert results[0].matched_count == 2
    ranking = [(-r.matched_count, r.recipe.id) for r in results]
    assert ranking == sorted(ranking)


def test_threshold_is_exclusive(seeded):
    # "pita" shares exactly one of five trigrams with "pesto": 0.2
    with session_scope(seeded) as db:
        strict = SimilaritySearch(threshold=0.2).search(db, "pita")
        loose = SimilaritySearch(threshold=0.19).search(db, "pita")

    assert [r.matched_count for r in strict] == [1]
    assert [r.matched_count for r in loose] == [2]


def test_empty_query_raises_even_without_data(db):
    with pytest.raises(BadQuery):
        SimilaritySearch().search(db, " , ")


def test_no_ingredients_stored(db):
    assert SimilaritySearch().search(db, "pesto") == []
