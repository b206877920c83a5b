# Variant tags -> engines.
#
#   301 / 501 / 701            classic countdown, "_do" suffix for double-out
#   atw_1_20 / ...             Around the World, "_multi" suffix for multiplier advances
#   killer_3 / _5 / _7         Killer with 3, 5 or 7 maximum lives

from atw import ATW_CONFIGS, ATWEngine
from classic import STARTING_SCORES, ClassicEngine
from errors import ValidationError
from killer import KILLER_CONFIGS, KillerEngine

DOUBLE_OUT_SUFFIX = "_do"
MULTIPLIER_SUFFIX = "_multi"


def engine_for(variant):
    """Build the engine for a variant tag. Raises ValidationError for unknown tags."""
    tag = str(variant or "").strip().lower()

    base = tag[: -len(DOUBLE_OUT_SUFFIX)] if tag.endswith(DOUBLE_OUT_SUFFIX) else tag
    if base.isdigit() and int(base) in STARTING_SCORES:
        return ClassicEngine(int(base), double_out=base != tag, variant=tag)

    base = tag[: -len(MULTIPLIER_SUFFIX)] if tag.endswith(MULTIPLIER_SUFFIX) else tag
    if base in ATW_CONFIGS:
        return ATWEngine(ATW_CONFIGS[base], multiplier_advances=True if base != tag else None, variant=tag)

    if tag in KILLER_CONFIGS:
        return KillerEngine(KILLER_CONFIGS[tag]["max_lives"], variant=tag)

    raise ValidationError(f"Unknown game variant {variant!r}")


def available_variants():
    tags = [str(score) for score in STARTING_SCORES]
    tags += [tag + DOUBLE_OUT_SUFFIX for tag in list(tags)]
    tags += list(ATW_CONFIGS) + [tag + MULTIPLIER_SUFFIX for tag in ATW_CONFIGS]
    tags += list(KILLER_CONFIGS)
    return tags
