"""
Folder-name prefixes for installed mods.

Each enabled mod is installed into ``<prefix>-<name>`` under the target
directory. The prefix is a three-letter base-26 code derived from the mod's
order, so the game loader (which sorts ``~mods`` alphabetically) sees the
same priority the user chose:

    0 -> AAA, 1 -> AAB, ... 25 -> AAZ, 26 -> ABA, ... 675 -> AZZ, 676 -> BAA
"""

from __future__ import annotations

ALPHABET_SIZE = 26
PREFIX_LENGTH = 3
MAX_ORDER = ALPHABET_SIZE**PREFIX_LENGTH - 1  # 17575 -> ZZZ


def prefix(order: int) -> str:
    """Return the sortable three-letter prefix for ``order``.

    Raises ``ValueError`` for orders outside ``[0, MAX_ORDER]``; the first
    letter does not wrap past 'Z'.
    """
    if order < 0:
        raise ValueError(f"Mod order must be non-negative, got {order}")
    if order > MAX_ORDER:
        raise ValueError(
            f"Mod order {order} exceeds the {MAX_ORDER + 1} slots the "
            f"{PREFIX_LENGTH}-letter prefix can express"
        )

    third = order % ALPHABET_SIZE
    second = (order // ALPHABET_SIZE) % ALPHABET_SIZE
    first = order // (ALPHABET_SIZE * ALPHABET_SIZE)
    return "".join(chr(ord("A") + n) for n in (first, second, third))


def target_folder_name(order: int, name: str) -> str:
    return f"{prefix(order)}-{name}"
