# register_core_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1ステップ分の実行結果を記録した不変のデータ構造を定義します。
デバッガの実行履歴と、ブレークポイント判定に用いる責務を負います。
"""
from dataclasses import dataclass

from register_core_tracer.core.instruction import Instruction
from register_core_tracer.core.state import Registers


# @intent:responsibility ある1ステップの実行結果を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    実行前の命令ポインタ値、実行した命令、実行前後のレジスタファイル、累計ステップ数を記録する。
    """
    ip: int
    instruction: Instruction
    # @intent:rationale Registersは不変のため、後続の実行で書き換わらない。コピーせずに保持する。
    before: Registers
    after: Registers
    step_count: int
