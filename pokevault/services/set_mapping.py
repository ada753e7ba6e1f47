"""
Set ID mapping: translation between set-identifier vocabularies.

The same logical set is named differently by the UI (display slugs), the
pricing provider and the artwork provider. This module holds the static
lookup tables between them and the three-tier selection used to match a
card's set against a list of selectable sets.

INVARIANTS:
- Lookups are O(1) dict reads
- A missing key yields None, never a guessed value
- Every written variant of a decimal sub-release ("sv6.5", "sv06.5",
  "sv6pt5") is its own key pointing to one canonical ID
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pokevault.models.card import SetVocabulary

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SetOption:
    """A selectable set: pricing-provider ID plus display name."""

    id: str
    name: str


# =============================================================================
# ARTWORK (TCGdex) -> PRICING
# =============================================================================

ARTWORK_TO_PRICING: dict[str, str] = {
    # Base era
    "base1": "base1",
    "base2": "base2",
    "base4": "base4",
    "jungle": "base2",
    "fossil": "base3",
    "tr": "base5",
    "gym1": "gym1",
    "gym2": "gym2",
    "lc": "base6",
    # Neo era
    "neo1": "neo1",
    "neo2": "neo2",
    "neo3": "neo3",
    "neo4": "neo4",
    # E-Card era
    "ecard1": "ecard1",
    "ecard2": "ecard2",
    "ecard3": "ecard3",
    # Ruby & Sapphire era
    "ex1": "ex1",
    "ex2": "ex2",
    "ex3": "ex3",
    "ex4": "ex4",
    "ex5": "ex5",
    "ex6": "ex6",
    "ex7": "ex7",
    "ex8": "ex8",
    "ex9": "ex9",
    "ex10": "ex10",
    "ex11": "ex11",
    "ex12": "ex12",
    "ex13": "ex13",
    "ex14": "ex14",
    "ex15": "ex15",
    "ex16": "ex16",
    # Diamond & Pearl era
    "dp1": "dp1",
    "dp2": "dp2",
    "dp3": "dp3",
    "dp4": "dp4",
    "dp5": "dp5",
    "dp6": "dp6",
    "dp7": "dp7",
    # Platinum era
    "pl1": "pl1",
    "pl2": "pl2",
    "pl3": "pl3",
    "pl4": "pl4",
    # HeartGold & SoulSilver era
    "hgss1": "hgss1",
    "hgss2": "hgss2",
    "hgss3": "hgss3",
    "hgss4": "hgss4",
    # Black & White era
    "bw1": "bw1",
    "bw2": "bw2",
    "bw3": "bw3",
    "bw4": "bw4",
    "bw5": "bw5",
    "bw6": "bw6",
    "bw7": "bw7",
    "bw8": "bw8",
    "bw9": "bw9",
    "bw10": "bw10",
    "bw11": "bw11",
    # XY era
    "xy1": "xy1",
    "xy2": "xy2",
    "xy3": "xy3",
    "xy4": "xy4",
    "xy5": "xy5",
    "xy6": "xy6",
    "xy7": "xy7",
    "xy8": "xy8",
    "xy9": "xy9",
    "xy10": "xy10",
    "xy11": "xy11",
    "xy12": "xy12",
    # Sun & Moon era
    "sm1": "sm1",
    "sm2": "sm2",
    "sm3": "sm3",
    "sm35": "sm35",
    "sm3.5": "sm35",
    "sm4": "sm4",
    "sm5": "sm5",
    "sm6": "sm6",
    "sm7": "sm7",
    "sm75": "sm75",
    "sm7.5": "sm75",
    "sm8": "sm8",
    "sm9": "sm9",
    "det1": "det1",
    "sm10": "sm10",
    "sm11": "sm11",
    "sm115": "sm115",
    "sm11.5": "sm115",
    "sm12": "sm12",
    # Sword & Shield era
    "swsh1": "swsh1",
    "swsh2": "swsh2",
    "swsh3": "swsh3",
    "swsh35": "swsh35",
    "swsh3.5": "swsh35",
    "swsh4": "swsh4",
    "swsh45": "swsh45",
    "swsh4.5": "swsh45",
    "swsh5": "swsh5",
    "swsh6": "swsh6",
    "swsh7": "swsh7",
    "swsh8": "swsh8",
    "swsh9": "swsh9",
    "swsh10": "swsh10",
    "swsh10.5": "swsh10",
    "swsh11": "swsh11",
    "swsh12": "swsh12",
    "swsh12pt5": "swsh12pt5",
    "swsh12.5": "swsh12pt5",
    # Scarlet & Violet era
    "sv1": "sv1",
    "sv01": "sv1",
    "sv2": "sv2",
    "sv02": "sv2",
    "sv3": "sv3",
    "sv03": "sv3",
    "sv3pt5": "sv3pt5",
    "sv3.5": "sv3pt5",
    "sv03.5": "sv3pt5",
    "sv4": "sv4",
    "sv04": "sv4",
    "sv4pt5": "sv4pt5",
    "sv4.5": "sv4pt5",
    "sv04.5": "sv4pt5",
    "sv5": "sv5",
    "sv05": "sv5",
    "sv6": "sv6",
    "sv06": "sv6",
    "sv6pt5": "sv6pt5",
    "sv6.5": "sv6pt5",
    "sv06.5": "sv6pt5",
    "sv7": "sv7",
    "sv07": "sv7",
    "sv8": "sv8",
    "sv08": "sv8",
    "sv8pt5": "sv8pt5",
    "sv8.5": "sv8pt5",
    "sv08.5": "sv8pt5",
    "sv9": "sv9",
    "sv09": "sv9",
}


# =============================================================================
# DISPLAY (UI slugs) -> PRICING
# =============================================================================

DISPLAY_TO_PRICING: dict[str, str] = {
    "base1": "base1",
    "jungle": "jungle",
    "fossil": "fossil",
    "base2": "base2",
    "sword-shield": "swsh1",
    "swsh1": "swsh1",
    "rebel-clash": "swsh2",
    "swsh2": "swsh2",
    "darkness-ablaze": "swsh3",
    "swsh3": "swsh3",
    "vivid-voltage": "swsh4",
    "swsh4": "swsh4",
    "battle-styles": "swsh5",
    "swsh5": "swsh5",
    "chilling-reign": "swsh6",
    "swsh6": "swsh6",
    "evolving-skies": "swsh7",
    "swsh7": "swsh7",
    "fusion-strike": "swsh8",
    "swsh8": "swsh8",
    "brilliant-stars": "swsh9",
    "swsh9": "swsh9",
    "astral-radiance": "swsh10",
    "swsh10": "swsh10",
    "lost-origin": "swsh11",
    "swsh11": "swsh11",
    "silver-tempest": "swsh12",
    "swsh12": "swsh12",
    "scarlet-violet": "sv1",
    "sv1": "sv1",
    "paldea-evolved": "sv2",
    "sv2": "sv2",
    "obsidian-flames": "sv3",
    "sv3": "sv3",
    "151": "sv3pt5",
    "sv3pt5": "sv3pt5",
    "paradox-rift": "sv4",
    "sv4": "sv4",
    "paldean-fates": "sv4pt5",
    "sv4pt5": "sv4pt5",
    "temporal-forces": "sv5",
    "sv5": "sv5",
    "twilight-masquerade": "sv6",
    "sv6": "sv6",
    "shrouded-fable": "sv6pt5",
    "sv6pt5": "sv6pt5",
    "stellar-crown": "sv7",
    "sv7": "sv7",
    "surging-sparks": "sv8",
    "sv8": "sv8",
}


# =============================================================================
# PRICING -> ARTWORK (TCGdex)
# =============================================================================

# Pricing IDs whose TCGdex ID is spelled differently
_PRICING_TO_ARTWORK_OVERRIDES: dict[str, str] = {
    "sm35": "sm3.5",
    "sm75": "sm7.5",
    "sm115": "sm11.5",
    "swsh35": "swsh3.5",
    "swsh45": "swsh4.5",
    "swsh12pt5": "swsh12.5",
    "sv1": "sv01",
    "sv2": "sv02",
    "sv3": "sv03",
    "sv3pt5": "sv03.5",
    "sv4": "sv04",
    "sv4pt5": "sv04.5",
    "sv5": "sv05",
    "sv6": "sv06",
    "sv6pt5": "sv06.5",
    "sv7": "sv07",
    "sv8": "sv08",
    "sv8pt5": "sv08.5",
    "sv9": "sv09",
}

PRICING_TO_ARTWORK: dict[str, str] = {
    pricing_id: _PRICING_TO_ARTWORK_OVERRIDES.get(pricing_id, pricing_id)
    for pricing_id in sorted(set(ARTWORK_TO_PRICING.values()))
}


_TABLES: dict[tuple[SetVocabulary, SetVocabulary], Mapping[str, str]] = {
    (SetVocabulary.ARTWORK, SetVocabulary.PRICING): ARTWORK_TO_PRICING,
    (SetVocabulary.DISPLAY, SetVocabulary.PRICING): DISPLAY_TO_PRICING,
    (SetVocabulary.PRICING, SetVocabulary.ARTWORK): PRICING_TO_ARTWORK,
}


class SetIdMapper:
    """
    Translates set IDs between vocabularies using static tables.

    Tables are injectable so tests can use small fixtures.
    """

    def __init__(
        self,
        tables: Mapping[tuple[SetVocabulary, SetVocabulary], Mapping[str, str]] | None = None,
    ) -> None:
        self._tables = dict(_TABLES if tables is None else tables)

    def map_set_id(
        self,
        source_id: str,
        source: SetVocabulary,
        target: SetVocabulary = SetVocabulary.PRICING,
    ) -> str | None:
        """
        Map a set ID from one vocabulary to another.

        Args:
            source_id: Set ID expressed in ``source``
            source: Vocabulary of ``source_id``
            target: Vocabulary to translate into

        Returns:
            The mapped ID, ``source_id`` unchanged if the vocabularies match,
            or None if no mapping exists.
        """
        if source == target:
            return source_id

        table = self._tables.get((source, target))
        if table is None:
            return None
        return table.get(source_id)

    def select_set(
        self,
        set_id: str,
        set_name: str | None,
        candidates: Iterable[SetOption],
    ) -> SetOption | None:
        """
        Match a card's artwork-provider set against selectable sets.

        Resolution order (first match wins):
        1. Exact: ``set_id`` equals a candidate ID
        2. Mapped: artwork->pricing mapping of ``set_id`` equals a candidate ID
        3. Name: case-insensitive containment, either direction, between
           ``set_name`` and a candidate name, in candidate order

        Returns None when nothing matches. Never defaults to a candidate.
        """
        options = list(candidates)

        for option in options:
            if option.id == set_id:
                return option

        mapped = self.map_set_id(set_id, SetVocabulary.ARTWORK, SetVocabulary.PRICING)
        if mapped is not None:
            for option in options:
                if option.id == mapped:
                    return option

        if set_name:
            search_name = set_name.lower()
            # First containment hit wins; candidates are not scored
            for option in options:
                option_name = option.name.lower()
                if not option_name:
                    continue
                if search_name in option_name or option_name in search_name:
                    return option

        logger.info(
            "SET_SELECTION_UNRESOLVED",
            extra={"set_id": set_id, "set_name": set_name, "candidates": len(options)},
        )
        return None


_set_mapper: SetIdMapper | None = None


def get_set_mapper() -> SetIdMapper:
    """Get the process-wide set mapper."""
    global _set_mapper
    if _set_mapper is None:
        _set_mapper = SetIdMapper()
    return _set_mapper
