# src/register_core_tracer/inference/__init__.py
"""
Opcode Inference Package
"""
from .engine import (
    OpcodeResolver,
    behaves_like,
    build_candidate_map,
    count_ambiguous_samples,
    eliminate,
    execute_unknown_program,
    resolve_mapping,
)
