from __future__ import annotations

from typing import Any

from onnx2prim.ir_builder.op_registry import resolve_node_dispatch


def dispatch_node(node: Any, ctx: Any) -> None:
    entry = resolve_node_dispatch(node, ctx)
    entry.builder(node, ctx)
