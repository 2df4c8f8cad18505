"""
Assembles streaming tool-call fragments into complete ToolCall objects.

Design goals:
  - Accumulate ``RawToolDelta`` fragments keyed by ``call_index``.
  - ``id`` and ``name`` are replaced only by non-empty values; argument text
    is appended in arrival order.
  - ``finalize()`` runs once the round's stream has ended.  Slots are emitted
    in ascending index order.  An argument buffer that does not parse falls
    back to ``{}`` -- the tool still runs and gets to report the problem --
    and the failure is recorded in ``self.errors``.
"""

from __future__ import annotations

import json

from companion.llm.types import RawToolDelta, ToolCall


class ToolCallAssembler:
    """Buffers raw tool-call deltas for one round and emits ``ToolCall`` objects."""

    def __init__(self) -> None:
        self._buf: dict[int, dict] = {}
        self.errors: list[str] = []

    def __len__(self) -> int:
        return len(self._buf)

    def __bool__(self) -> bool:
        return bool(self._buf)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, delta: RawToolDelta) -> None:
        """Merge a single fragment into its slot, creating the slot if needed."""
        buf = self._buf.setdefault(
            delta.call_index, {"id": "", "name": "", "args": ""}
        )

        if delta.id:
            buf["id"] = delta.id

        if delta.name_delta:
            buf["name"] = delta.name_delta

        if delta.args_delta:
            buf["args"] += delta.args_delta

    def buffered_arguments(self, idx: int) -> str:
        """Return the raw argument text accumulated so far for slot *idx*."""
        return self._buf[idx]["args"]

    def finalize(self) -> list[ToolCall]:
        """Build ``ToolCall`` records for every slot, ordered by slot index."""
        return [self._build(idx) for idx in sorted(self._buf)]

    def reset(self) -> None:
        """Discard all accumulated state."""
        self._buf.clear()
        self.errors.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build(self, idx: int) -> ToolCall:
        buf = self._buf[idx]
        raw_args = buf["args"]

        args: dict = {}
        if raw_args.strip():
            try:
                parsed = json.loads(raw_args)
            except (json.JSONDecodeError, ValueError) as exc:
                self.errors.append(
                    f"tool_call_json_parse_failed idx={idx} err={exc}"
                )
            else:
                if isinstance(parsed, dict):
                    args = parsed
                else:
                    self.errors.append(
                        f"tool_call_json_parse_failed idx={idx} err=not an object"
                    )

        return ToolCall(
            id=buf["id"] or f"call_{idx}",
            name=buf["name"].strip(),
            arguments=args,
            raw_arguments=raw_args,
        )
