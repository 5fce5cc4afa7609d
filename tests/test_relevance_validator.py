import pytest

from models.search_types import ProjectContext, ResourceType
from orchestrator.relevance_validator import RelevanceValidator


@pytest.fixture
def validator():
    return RelevanceValidator()


@pytest.mark.unit
def test_matching_result_is_relevant(validator, make_result):
    result = make_result("https://www.bobvila.com/a", title="How to fix a leaky faucet")

    verdict = validator.validate(result, None, "fix leaky faucet", ResourceType.TUTORIAL)

    assert verdict.is_relevant is True
    assert verdict.relevance_score >= 40
    assert "Matches 100% of search terms" in verdict.reasons
    assert "Contains DIY-related terms" in verdict.reasons
    assert "Relevant to tutorial search" in verdict.reasons


@pytest.mark.unit
def test_unrelated_result_is_not_relevant(validator, make_result):
    result = make_result(
        "https://www.bobvila.com/b",
        title="Weeknight pasta recipe",
        snippet="A quick cooking guide for a family dinner menu.",
    )

    verdict = validator.validate(result, None, "fix leaky faucet", ResourceType.TUTORIAL)

    assert verdict.is_relevant is False
    assert verdict.relevance_score == 0
    assert "Contains unrelated terms" in verdict.reasons


@pytest.mark.unit
def test_unrelated_terms_strictly_lower_the_score(validator, make_result):
    base = make_result("https://www.bobvila.com/a", title="How to fix a leaky faucet")
    polluted = make_result(
        "https://www.bobvila.com/a",
        title="How to fix a leaky faucet",
        snippet=base.snippet + " Before your travel plans, try this recipe.",
    )

    base_score = validator.validate(base, None, "fix leaky faucet", ResourceType.TUTORIAL).relevance_score
    polluted_score = validator.validate(
        polluted, None, "fix leaky faucet", ResourceType.TUTORIAL
    ).relevance_score

    assert polluted_score < base_score


@pytest.mark.unit
def test_plural_unrelated_terms_lower_the_score(validator, make_result):
    base = make_result("https://www.bobvila.com/a", title="How to fix a leaky faucet")
    polluted = make_result(
        "https://www.bobvila.com/a",
        title="How to fix a leaky faucet",
        snippet=base.snippet + " Browse our weeknight recipes.",
    )

    base_score = validator.validate(base, None, "fix leaky faucet", ResourceType.TUTORIAL).relevance_score
    verdict = validator.validate(polluted, None, "fix leaky faucet", ResourceType.TUTORIAL)

    assert base_score > 20
    assert verdict.relevance_score == base_score - 20
    assert "Contains unrelated terms" in verdict.reasons


@pytest.mark.unit
def test_unrelated_terms_match_whole_words_only(validator, make_result):
    result = make_result(
        "https://www.bobvila.com/c",
        title="Install carpet tiles",
        snippet="Lay the carpet around the appliance.",
    )

    verdict = validator.validate(result, None, "install carpet", ResourceType.TUTORIAL)

    assert "Contains unrelated terms" not in verdict.reasons


@pytest.mark.unit
def test_project_context_adds_score(validator, make_result):
    result = make_result(
        "https://www.bobvila.com/d",
        title="Building a cedar garden bench",
        snippet="Use cedar boards and deck screws for the patio.",
    )
    project = ProjectContext(
        title="Garden Bench", materials=["cedar", "deck screws"], focus_areas=["patio"]
    )

    without_project = validator.validate(result, None, "garden bench", ResourceType.TUTORIAL)
    with_project = validator.validate(result, project, "garden bench", ResourceType.TUTORIAL)

    assert with_project.relevance_score == without_project.relevance_score + 2 * 15 + 2 * 10 + 8
    assert "Mentions project materials" in with_project.reasons


@pytest.mark.unit
def test_low_query_ratio_blocks_relevance_even_with_high_score(validator, make_result):
    result = make_result(
        "https://www.bobvila.com/e",
        title="DIY tutorial: how to install and repair, a step by step guide",
        snippet="Instructions for any project.",
    )

    verdict = validator.validate(result, None, "tile backsplash", ResourceType.TUTORIAL)

    assert verdict.relevance_score >= 25
    assert verdict.is_relevant is False


@pytest.mark.unit
def test_custom_thresholds(make_result):
    result = make_result("https://www.bobvila.com/a", title="How to fix a leaky faucet")
    strict = RelevanceValidator(thresholds={"relevant_min_score": 500})

    assert strict.validate(result, None, "fix leaky faucet", ResourceType.TUTORIAL).is_relevant is False


@pytest.mark.unit
def test_apply_annotates_result(validator, make_result):
    result = make_result("https://www.bobvila.com/a", title="How to fix a leaky faucet")

    annotated, is_relevant = validator.apply(result, None, "fix leaky faucet", ResourceType.TUTORIAL)

    assert is_relevant is True
    assert annotated.is_validated is True
    assert annotated.relevance_score > 0
    assert annotated.validation_reasons
    assert result.relevance_score is None
