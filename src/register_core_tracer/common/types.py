"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される汎用的な型エイリアスなどを定義します。
"""
from typing import TYPE_CHECKING, Dict, Set

if TYPE_CHECKING:
    from register_core_tracer.core.opcodes import Opcode

# @intent:data_structure 数値オペコード（0〜15）からオペコード候補集合への対応表。
# 推論エンジン内部で、サンプルごとに候補を絞り込むために使用されます。
CandidateMap = Dict[int, Set["Opcode"]]

# @intent:data_structure 確定した数値オペコードとセマンティックなOpcodeの全単射。
# Inference, Loader, 呼び出し元など複数のレイヤーで共通して使用されます。
OpcodeMapping = Dict[int, "Opcode"]

# 数値オペコードの総数。Opcodeの種類数と一致する。
OPCODE_COUNT = 16
