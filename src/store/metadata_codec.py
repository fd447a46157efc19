"""Cell metadata payload codec.

This module converts capability-specific extra state to and from the
single newline-delimited text payload stored in the ``metadata`` column.
Container inventories are nested as a YAML document under ``items``.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Callable, TypeVar

import yaml

from core.cell_extra import (
    BlockFace,
    CellExtra,
    CommandText,
    ContainerItems,
    ExtraKind,
    ItemStack,
    NoteTone,
    RecordPlaying,
    SignText,
    SkullMarker,
    SkullType,
    SpawnerMob,
    Tone,
)
from core.constants import SIGN_LINE_COUNT
from core.errors import NimitzMetadataError

_NAME_TOKEN = re.compile(r"^[A-Z][A-Z0-9_]*$")
_MAX_OCTAVE = 2
_EnumT = TypeVar("_EnumT", bound=Enum)


def encode_metadata(extra: CellExtra | None) -> str | None:
    """Encode a cell's extra state into its metadata payload.

    Args:
        extra: Extra state read from a live cell, if any.

    Returns:
        Payload text, or ``None`` when the cell carries no extra state.
    """
    if isinstance(extra, SignText):
        return "\n".join(extra.lines)
    if isinstance(extra, ContainerItems):
        slots = [_item_to_payload(item) for item in extra.items]
        return yaml.safe_dump({"items": slots}, sort_keys=False)
    if isinstance(extra, NoteTone):
        sharped = "true" if extra.sharped else "false"
        return f"{extra.tone.value}\n{extra.octave}\n{sharped}"
    if isinstance(extra, RecordPlaying):
        return extra.material
    if isinstance(extra, SkullMarker):
        return f"{extra.owner}\n{extra.skull_type.value}\n{extra.rotation.value}"
    if isinstance(extra, CommandText):
        return f"{extra.name}\n{extra.command}"
    if isinstance(extra, SpawnerMob):
        return extra.entity_type
    return None


def decode_metadata(kind: ExtraKind, payload: str) -> CellExtra:
    """Decode a metadata payload for a cell of the given capability.

    Args:
        kind: Capability of the live cell receiving the payload.
        payload: Stored metadata text.

    Returns:
        Typed extra state to apply to the cell.

    Raises:
        NimitzMetadataError: If the payload does not match the capability's shape.
    """
    decoder = _DECODERS.get(kind)
    if decoder is None:
        raise NimitzMetadataError(f"No metadata decoder registered for capability '{kind}'.")
    return decoder(payload)


def _decode_sign(payload: str) -> SignText:
    lines = payload.split("\n")
    if len(lines) > SIGN_LINE_COUNT:
        raise NimitzMetadataError(
            f"Sign payload has {len(lines)} lines; signs hold at most {SIGN_LINE_COUNT}."
        )
    padding = [""] * (SIGN_LINE_COUNT - len(lines))
    return SignText(lines=tuple(lines + padding))


def _decode_container(payload: str) -> ContainerItems:
    try:
        document = yaml.safe_load(payload)
    except yaml.YAMLError as error:
        raise NimitzMetadataError(f"Container payload is not valid YAML: {error}") from error
    if not isinstance(document, dict) or not isinstance(document.get("items"), list):
        raise NimitzMetadataError("Container payload must be a mapping with an 'items' list.")
    # Empty slots are dropped: the restored inventory is refilled from non-empty stacks.
    items = tuple(_item_from_payload(slot) for slot in document["items"] if slot is not None)
    return ContainerItems(items=items)


def _decode_note(payload: str) -> NoteTone:
    tone_name, octave_text, sharped_text = _split_fields(payload, 3, "note")
    try:
        octave = int(octave_text)
    except ValueError as error:
        raise NimitzMetadataError(f"Note octave '{octave_text}' is not an integer.") from error
    if not 0 <= octave <= _MAX_OCTAVE:
        raise NimitzMetadataError(f"Note octave {octave} is outside 0..{_MAX_OCTAVE}.")
    return NoteTone(
        tone=_enum_member(Tone, tone_name),
        octave=octave,
        sharped=sharped_text.strip().lower() == "true",
    )


def _decode_record(payload: str) -> RecordPlaying:
    return RecordPlaying(material=_name_token(payload, "record material"))


def _decode_skull(payload: str) -> SkullMarker:
    owner, skull_type, rotation = _split_fields(payload, 3, "skull")
    return SkullMarker(
        owner=owner,
        skull_type=_enum_member(SkullType, skull_type),
        rotation=_enum_member(BlockFace, rotation),
    )


def _decode_command(payload: str) -> CommandText:
    parts = payload.split("\n", 1)
    if len(parts) != 2:
        raise NimitzMetadataError("Command payload needs a name line followed by the command.")
    return CommandText(name=parts[0], command=parts[1])


def _decode_spawner(payload: str) -> SpawnerMob:
    return SpawnerMob(entity_type=_name_token(payload, "spawner entity type"))


_DECODERS: dict[ExtraKind, Callable[[str], CellExtra]] = {
    ExtraKind.SIGN: _decode_sign,
    ExtraKind.CONTAINER: _decode_container,
    ExtraKind.NOTE: _decode_note,
    ExtraKind.RECORD: _decode_record,
    ExtraKind.SKULL: _decode_skull,
    ExtraKind.COMMAND: _decode_command,
    ExtraKind.SPAWNER: _decode_spawner,
}


def _split_fields(payload: str, expected: int, label: str) -> list[str]:
    """Split a payload into exactly ``expected`` newline-separated fields."""
    fields = payload.split("\n")
    if len(fields) != expected:
        raise NimitzMetadataError(
            f"{label.capitalize()} payload has {len(fields)} fields; expected {expected}."
        )
    return fields


def _enum_member(enum_type: type[_EnumT], token: str) -> _EnumT:
    """Resolve an enum member by its exact name."""
    try:
        return enum_type[token]
    except KeyError as error:
        raise NimitzMetadataError(f"Unknown {enum_type.__name__} token '{token}'.") from error


def _name_token(payload: str, label: str) -> str:
    """Validate an upper-case material or entity name."""
    if not _NAME_TOKEN.match(payload):
        raise NimitzMetadataError(f"Invalid {label} '{payload}'.")
    return payload


def _item_to_payload(item: ItemStack | None) -> dict[str, Any] | None:
    if item is None:
        return None
    return {"type": item.material, "amount": item.amount, "damage": item.damage}


def _item_from_payload(slot: Any) -> ItemStack:
    """Parse one serialized inventory slot.

    Raises:
        NimitzMetadataError: If the slot is not a valid item mapping.
    """
    if not isinstance(slot, dict) or "type" not in slot:
        raise NimitzMetadataError(f"Container slot {slot!r} is not an item mapping.")
    try:
        return ItemStack(
            material=_name_token(str(slot["type"]), "item material"),
            amount=int(slot.get("amount", 1)),
            damage=int(slot.get("damage", 0)),
        )
    except (TypeError, ValueError, OverflowError) as error:
        raise NimitzMetadataError(f"Container slot {slot!r} has invalid counts.") from error
