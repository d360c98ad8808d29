"""Unit tests for banned patterns, burstiness, fingerprints and duplication."""

import pytest

from content_factory.models.config import QualityConfig
from content_factory.quality.burstiness import measure_burstiness, split_sentences
from content_factory.quality.duplicates import check_cross_domain_duplication
from content_factory.quality.fingerprint import (
    content_fingerprint,
    content_signature,
    jaccard_similarity,
    normalize_for_fingerprint,
)
from content_factory.quality.report import evaluate_quality
from content_factory.quality.scanner import (
    BannedPatternScanner,
    ViolationCategory,
    format_violations_for_prompt,
    strip_dash_variants,
)
from content_factory.store import ContentStore


@pytest.fixture
def scanner() -> BannedPatternScanner:
    config = QualityConfig()
    return BannedPatternScanner(config.banned_words, config.banned_transitions)


class TestBannedPatternScanner:
    """Test banned word, transition and dash detection."""

    def test_clean_text(self, scanner: BannedPatternScanner, article_body: str) -> None:
        assert scanner.scan(article_body) == []

    def test_word_boundaries(self, scanner: BannedPatternScanner) -> None:
        """Banned words match whole words only, in any case."""
        violations = scanner.scan("We Delve into it.\nThe delver was robustly built.")

        assert [(v.pattern, v.line) for v in violations] == [("delve", 1)]
        assert violations[0].category is ViolationCategory.BANNED_WORD

    def test_transitions_and_dashes(self, scanner: BannedPatternScanner) -> None:
        text = "First line.\nIt's worth noting the cost — and the weight."

        violations = scanner.scan(text)

        assert {(v.category, v.line) for v in violations} == {
            (ViolationCategory.BANNED_TRANSITION, 2),
            (ViolationCategory.EM_DASH, 2),
        }

    def test_format_groups_lines(self, scanner: BannedPatternScanner) -> None:
        violations = scanner.scan("delve\nok\ndelve again\nleverage this")

        message = format_violations_for_prompt(violations)

        assert '"delve" on lines 1, 3' in message
        assert '"leverage" on line 4' in message
        assert format_violations_for_prompt([]) == ""

    def test_strip_dash_variants(self) -> None:
        text, changed = strip_dash_variants("a—b–c‒d")

        assert text == "a-b-c-d"
        assert changed is True
        assert strip_dash_variants("plain-text") == ("plain-text", False)


class TestBurstiness:
    """Test sentence-length variance."""

    def test_uniform_text_fails(self) -> None:
        text = " ".join(["The cat sat on the mat today."] * 20)

        result = measure_burstiness(text)

        assert result.passed is False
        assert result.score == pytest.approx(0.0)
        assert result.sentence_count == 20

    def test_varied_text_passes(self, article_body: str) -> None:
        result = measure_burstiness(article_body)

        assert result.passed is True
        assert result.sentence_count >= 5
        assert result.score >= 0.35

    def test_too_few_sentences_passes(self) -> None:
        result = measure_burstiness("One short sentence here. Another short one here.")

        assert result.passed is True
        assert result.score == 1.0

    def test_alternating_short_and_long_sentences(self) -> None:
        """Lengths 4 and 40: mean 22, population stddev 18, score 18/22."""
        short = "Boots need real fit."
        long = "Walk " + " ".join(["far"] * 38) + " today."
        text = " ".join([short, long] * 5)

        result = measure_burstiness(text)

        assert result.sentence_count == 10
        assert result.avg_length == pytest.approx(22.0)
        assert result.std_dev == pytest.approx(18.0)
        assert result.score == pytest.approx(18 / 22)
        assert result.passed is True

    def test_protected_periods(self) -> None:
        """Decimals, abbreviations and URLs do not end sentences."""
        text = (
            "Dr. Smith paid 3.5 dollars at https://shop.example.com today. "
            "The U.S.A. team won the final match."
        )

        sentences = split_sentences(text)

        assert len(sentences) == 2
        assert sentences[0].startswith("Dr. Smith paid 3.5 dollars")

    def test_markdown_is_stripped(self) -> None:
        text = "# Heading Here\n\n- **Bold** item with [a link](https://x.example) inside it."

        assert split_sentences(text) == ["Bold item with a link inside it."]


class TestFingerprint:
    """Test shingle signatures and Jaccard similarity."""

    def test_normalization(self) -> None:
        assert normalize_for_fingerprint("## Hello, **World**!\n[Link](http://x)") == "hello world link"

    def test_signature_is_stable_and_sorted(self, article_body: str) -> None:
        first = content_signature(article_body)
        second = content_signature(article_body)

        assert first == second
        assert first == sorted(first)
        assert all(len(h) == 16 for h in first)
        assert len(first) <= 100

    def test_short_text_has_no_signature(self) -> None:
        assert content_signature("two words") == []
        assert len(content_fingerprint("two words")) == 64

    def test_markup_does_not_change_fingerprint(self) -> None:
        plain = "Fit matters most when you buy hiking boots for long trips"
        marked = "**Fit** matters most when you buy [hiking boots](/boots) for long trips!"

        assert content_fingerprint(plain) == content_fingerprint(marked)

    def test_jaccard(self) -> None:
        assert jaccard_similarity(["a", "b", "c"], ["b", "c", "d"]) == pytest.approx(0.5)
        assert jaccard_similarity(["a"], []) == 0.0
        assert jaccard_similarity([], []) == 0.0

    def test_jaccard_on_documents(self, article_body: str) -> None:
        unrelated = (
            "Sourdough starters need flour and water every single day. Keep the jar warm, "
            "discard half before feeding, and bake once bubbles reach the rubber band."
        )
        ours = content_signature(article_body)

        assert jaccard_similarity(ours, content_signature(article_body)) == 1.0
        assert jaccard_similarity(ours, content_signature(unrelated)) == 0.0

    def test_jaccard_on_paraphrase(self) -> None:
        """Two of eight distinct shingles differ on each side: 4 shared / 8 total."""
        original = content_signature("The boots must fit well on long trails.")
        paraphrase = content_signature("The **boots** must fit well on steep trails!")

        assert len(original) == len(paraphrase) == 6
        assert jaccard_similarity(original, paraphrase) == pytest.approx(4 / 8)

    def test_jaccard_matches_set_arithmetic(self, article_body: str) -> None:
        edited = article_body.replace(
            "Try them on in the afternoon.",
            "Shop for them after lunch, once you have been walking around for a few hours.",
        )
        left = content_signature(article_body)
        right = content_signature(edited)
        expected = len(set(left) & set(right)) / len(set(left) | set(right))

        assert jaccard_similarity(left, right) == pytest.approx(expected)
        assert 0.0 < expected < 1.0


class TestEvaluateQuality:
    """Test the combined report."""

    def test_clean_body_passes(self, article_body: str) -> None:
        report = evaluate_quality(article_body)

        assert report.passed is True
        assert report.failure_reasons() == []
        assert report.fingerprint == content_fingerprint(article_body, report.signature)

    def test_failures_are_listed(self) -> None:
        text = "Let us delve into this.\n" + " ".join(["The cat sat on the mat today."] * 10)

        report = evaluate_quality(text)

        assert report.passed is False
        reasons = report.failure_reasons()
        assert any("delve" in r for r in reasons)
        assert any("low burstiness" in r for r in reasons)


class TestCrossDomainDuplication:
    """Test the non-blocking duplication check."""

    def test_flags_similar_article_on_other_domain(self, store: ContentStore, article_body: str) -> None:
        ours = store.create_domain("ours.example")
        theirs = store.create_domain("theirs.example")
        other = store.create_article(theirs.id, "hiking boots", title="Boots", slug="boots")
        store.set_article_body(other.id, article_body)
        mine = store.create_article(ours.id, "hiking boots", title="Boots", slug="boots")
        updated = store.set_article_body(mine.id, article_body)

        matches = check_cross_domain_duplication(store, mine.id, ours.id, updated.content_signature)

        assert len(matches) == 1
        assert matches[0].article_id == other.id
        assert matches[0].similarity == pytest.approx(1.0)
        events = store.list_events("duplicate_content")
        assert len(events) == 1
        assert events[0].article_id == mine.id

    def test_same_domain_is_ignored(self, store: ContentStore, article_body: str) -> None:
        ours = store.create_domain("ours.example")
        first = store.create_article(ours.id, "boots", title="Boots", slug="boots")
        store.set_article_body(first.id, article_body)
        second = store.create_article(ours.id, "boots", title="Boots", slug="boots-2")
        updated = store.set_article_body(second.id, article_body)

        assert check_cross_domain_duplication(store, second.id, ours.id, updated.content_signature) == []
        assert store.list_events("duplicate_content") == []
