"""
Chord-tone priority rules.

Root and third are always Required. The fifth becomes Required only when
it is altered (diminished or augmented triads) because dropping it changes
the chord's identity. A seventh, when present, is Required.
"""

from enum import IntEnum
from typing import Dict, List, Optional

from .chords import (
    ChordQuality,
    ChordRecipe,
    ChordToneRole,
    chord_tone_pitch_classes,
)
from .keys import Key


class TonePriority(IntEnum):
    OPTIONAL = 0
    PREFERRED = 1
    REQUIRED = 2


def _has_altered_fifth(recipe: ChordRecipe) -> bool:
    return recipe.quality in (ChordQuality.DIMINISHED, ChordQuality.AUGMENTED)


def priority(recipe: ChordRecipe, role: ChordToneRole) -> TonePriority:
    """Priority of one chord-tone role for *recipe*."""
    if role is ChordToneRole.ROOT or role is ChordToneRole.THIRD:
        return TonePriority.REQUIRED
    elif role is ChordToneRole.FIFTH:
        return TonePriority.REQUIRED if _has_altered_fifth(recipe) else TonePriority.OPTIONAL
    elif role is ChordToneRole.SEVENTH:
        return TonePriority.REQUIRED if recipe.has_seventh else TonePriority.OPTIONAL
    raise ValueError(f"Unhandled chord-tone role: {role!r}")


def count_required_tones(recipe: ChordRecipe, has_seventh: Optional[bool] = None) -> int:
    """
    Minimum number of distinct pitch classes to place before doubling.

    Args:
        recipe: Chord recipe.
        has_seventh: Override for whether a seventh is present; defaults
            to the recipe's own extension.
    """
    if has_seventh is None:
        has_seventh = recipe.has_seventh
    count = 2
    if _has_altered_fifth(recipe):
        count += 1
    if has_seventh:
        count += 1
    return count


def tone_priorities(recipe: ChordRecipe) -> List[TonePriority]:
    """Priorities aligned with :func:`chord_tone_pitch_classes` ordering."""
    roles = [ChordToneRole.ROOT, ChordToneRole.THIRD, ChordToneRole.FIFTH]
    if recipe.has_seventh:
        roles.append(ChordToneRole.SEVENTH)
    return [priority(recipe, role) for role in roles]


def required_pitch_classes(key: Key, recipe: ChordRecipe) -> List[int]:
    """Pitch classes at Required priority, in chord-tone order."""
    tones = chord_tone_pitch_classes(key, recipe)
    return [pc for pc, p in zip(tones, tone_priorities(recipe))
            if p is TonePriority.REQUIRED]


def priority_map(key: Key, recipe: ChordRecipe) -> Dict[int, TonePriority]:
    """Pitch class -> priority, highest priority wins for coinciding tones."""
    result: Dict[int, TonePriority] = {}
    for pc, p in zip(chord_tone_pitch_classes(key, recipe), tone_priorities(recipe)):
        result[pc] = max(result.get(pc, TonePriority.OPTIONAL), p)
    return result
