"""
Property-based tests for domain normalization, extension policy and scoring.
"""

import random

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_suggester.domain_utils import (
    DEFAULT_YEARLY_PRICE,
    EXTENSION_PRICES,
    EXTENSION_ROTATION,
    POPULAR_EXTENSIONS,
    detect_search_mode,
    format_domain_name,
    is_valid_domain,
    parse_domain_input,
    pick_extension,
    round_policy,
    score_domain,
    to_fully_qualified,
    yearly_price,
)
from domain_suggester.enums import SearchMode
from domain_suggester.models import SuggestionCandidate


labels = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=1,
    max_size=20,
)


class TestRoundPolicyProperty:
    """Round 0 is default-only; later rounds rotate preferred extensions."""

    def test_first_round_uses_only_default(self) -> None:
        policy = round_policy(0)

        assert policy.preferred_extensions == ()
        assert policy.permitted_extensions == (".com",)
        assert policy.default_share == 1.0
        assert ".com" in policy.directive()

    @given(index=st.integers(min_value=1, max_value=50))
    @settings(max_examples=50)
    def test_rotation(self, index: int) -> None:
        policy = round_policy(index)

        assert policy.preferred_extensions == EXTENSION_ROTATION[(index - 1) % 2]
        assert policy.default_share == 0.6
        assert policy.creative == (index >= 3)
        assert policy.permitted_extensions[0] == ".com"

    def test_second_and_third_rounds(self) -> None:
        assert round_policy(1).preferred_extensions == (".io", ".co", ".app")
        assert round_policy(2).preferred_extensions == (".net", ".org", ".ai")

    def test_directive_mentions_share_and_extensions(self) -> None:
        text = round_policy(1).directive()

        assert "60%" in text
        assert ".io, .co, .app" in text
        assert "creativity" in round_policy(3).directive()


class TestExtensionAssignmentProperty:
    """Extensions follow the round policy."""

    @given(name=labels, seed=st.integers(min_value=0, max_value=10_000))
    @settings(max_examples=100)
    def test_first_round_always_default(self, name: str, seed: int) -> None:
        candidate = SuggestionCandidate(name=name, extension=".io")

        assert pick_extension(candidate, round_policy(0), random.Random(seed)) == ".com"

    @given(
        name=labels,
        ext=st.sampled_from([".xyz", ".store", ".ai"]),
        index=st.integers(min_value=0, max_value=5),
        seed=st.integers(min_value=0, max_value=10_000),
    )
    @settings(max_examples=100)
    def test_explicit_extension_is_kept(self, name: str, ext: str, index: int, seed: int) -> None:
        candidate = SuggestionCandidate(name=name, extension=ext, explicit_extension=True)

        assert pick_extension(candidate, round_policy(index), random.Random(seed)) == ext

    @given(index=st.integers(min_value=1, max_value=10), seed=st.integers(min_value=0, max_value=10_000))
    @settings(max_examples=100)
    def test_assigned_extension_is_permitted(self, index: int, seed: int) -> None:
        policy = round_policy(index)
        rng = random.Random(seed)

        for _ in range(20):
            ext = pick_extension(SuggestionCandidate(name="name"), policy, rng)
            assert ext in policy.permitted_extensions

    def test_default_share_is_respected(self) -> None:
        policy = round_policy(1)
        rng = random.Random(1234)

        picks = [pick_extension(SuggestionCandidate(name="x"), policy, rng) for _ in range(4000)]
        share = picks.count(".com") / len(picks)

        assert 0.55 < share < 0.65
        for ext in policy.preferred_extensions:
            assert picks.count(ext) > 0

    def test_permitted_suggestion_is_used(self) -> None:
        candidate = SuggestionCandidate(name="bolt", extension="co")

        assert pick_extension(candidate, round_policy(1), random.Random(0)) == ".co"


class TestFullyQualifiedProperty:
    """Normalized domains are valid hostnames or rejected."""

    @given(name=labels, index=st.integers(min_value=0, max_value=5), seed=st.integers(min_value=0, max_value=1000))
    @settings(max_examples=100)
    def test_result_is_lowercase_valid_domain(self, name: str, index: int, seed: int) -> None:
        candidate = SuggestionCandidate(name=name.upper())

        fqd = to_fully_qualified(candidate, round_policy(index), random.Random(seed))

        assert fqd is not None
        assert fqd.domain == name + fqd.extension
        assert fqd.domain == fqd.domain.lower()
        assert is_valid_domain(fqd.domain)

    @given(raw=st.sampled_from(["", "---", "...", "!!!", "a" * 64, "-bad", "bad--"]))
    @settings(max_examples=20)
    def test_unusable_names_are_dropped(self, raw: str) -> None:
        fqd = to_fully_qualified(SuggestionCandidate(name=raw), round_policy(0), random.Random(0))

        if fqd is not None:
            assert is_valid_domain(fqd.domain)
            assert not fqd.domain.startswith("-")

    def test_overlong_label_is_rejected(self) -> None:
        fqd = to_fully_qualified(SuggestionCandidate(name="a" * 64), round_policy(0), random.Random(0))

        assert fqd is None

    def test_spaces_and_symbols_are_stripped(self) -> None:
        fqd = to_fully_qualified(SuggestionCandidate(name="Pet Pal!"), round_policy(0), random.Random(0))

        assert fqd.domain == "petpal.com"


class TestDomainInputProperty:
    """User input splits into a base name and an optional extension."""

    @given(name=labels, ext=st.sampled_from(POPULAR_EXTENSIONS))
    @settings(max_examples=100)
    def test_popular_extensions_split(self, name: str, ext: str) -> None:
        base, extension = parse_domain_input(f"  {name}{ext.upper()} ")

        assert base + extension == name + ext

    def test_examples(self) -> None:
        assert parse_domain_input("example.com") == ("example", ".com")
        assert parse_domain_input("example") == ("example", None)
        assert parse_domain_input("shop.store") == ("shop", ".store")
        assert parse_domain_input("my.site.xyz") == ("my.site", ".xyz")

    def test_format_domain_name(self) -> None:
        assert format_domain_name(" Hello World!.COM ") == "helloworld.com"

    def test_search_mode(self) -> None:
        assert detect_search_mode("pet food delivery") == SearchMode.SUGGESTION
        assert detect_search_mode("  petfood.com ") == SearchMode.DOMAIN


    @given(ext=st.sampled_from(sorted(EXTENSION_PRICES)))
    @settings(max_examples=30)
    def test_yearly_price_for_listed_extension(self, ext: str) -> None:
        assert yearly_price(ext) == EXTENSION_PRICES[ext]
        assert yearly_price(ext) > 0

    def test_yearly_price_fallback(self) -> None:
        assert yearly_price(".com") == 12.99
        assert yearly_price(".zzz") == DEFAULT_YEARLY_PRICE


class TestScoringProperty:
    """Scores are bounded and favor short exact .com names."""

    @given(name=labels, ext=st.sampled_from(POPULAR_EXTENSIONS + [".xyz"]), exact=st.booleans())
    @settings(max_examples=200)
    def test_score_is_bounded(self, name: str, ext: str, exact: bool) -> None:
        score = score_domain(name + ext, ext, exact)

        assert 0 < score <= 100

    @given(name=labels, ext=st.sampled_from(POPULAR_EXTENSIONS))
    @settings(max_examples=100)
    def test_exact_match_adds_twenty(self, name: str, ext: str) -> None:
        assert score_domain(name + ext, ext, True) - score_domain(name + ext, ext, False) == 20

    def test_short_exact_com(self) -> None:
        assert score_domain("abc.com", ".com", True) == 98

    def test_com_beats_site(self) -> None:
        assert score_domain("brand.com", ".com", False) > score_domain("brand.site", ".site", False)
