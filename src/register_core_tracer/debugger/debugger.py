# register_core_tracer/debugger/debugger.py
"""
デバッガモジュール。

Cpu.step() を手動で駆動し、ユーザーが指定した条件（ブレークポイント）や
ステップ数の上限で実行を中断させる責務を負います。
Cpu.run() には反復上限がないため、有限回で止めたい呼び出し側はこのモジュールを使います。
"""
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional

from register_core_tracer.core.cpu import Cpu
from register_core_tracer.core.snapshot import Snapshot
from register_core_tracer.core.state import Registers

logger = logging.getLogger(__name__)

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    IP_MATCH = "IP_MATCH"               # 実行前の命令ポインタが特定の値に一致
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した

# @intent:responsibility run()が停止した理由を表します。
class StopReason(Enum):
    HALTED = "HALTED"           # 命令ポインタが命令列の範囲外になった
    BREAKPOINT = "BREAKPOINT"   # ブレークポイントにヒットした
    STEP_LIMIT = "STEP_LIMIT"   # 呼び出し側が指定したステップ数に達した

# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # IP_MATCH, REGISTER_VALUEで使用
    register: Optional[int] = None        # REGISTER_VALUE, REGISTER_CHANGEで使用
    enabled: bool = True                  # 有効/無効状態

# @intent:responsibility CPUの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントと実行履歴の管理を行うクラス。
    """
    def __init__(self, cpu: Cpu, history_limit: Optional[int] = None):
        self._cpu = cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._step_count: int = 0
        # @intent:responsibility 実行履歴を保持し、ステップバックをサポートします。
        # @intent:note history_limitを指定した場合、直近の件数だけを保持する。
        self._history: Deque[Snapshot] = deque(maxlen=history_limit)
        self._initial_registers: Registers = cpu.get_registers()

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        """
        ブレークポイント条件を追加します。重複は無視されます。
        """
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    @property
    def step_count(self) -> int:
        return self._step_count

    def _check_ip_breakpoints(self, ip: int) -> bool:
        for bp in self._breakpoints:
            if bp.enabled and bp.condition_type == BreakpointConditionType.IP_MATCH and bp.value == ip:
                return True
        return False

    def _check_register_breakpoints(self, snapshot: Snapshot) -> bool:
        """
        Snapshotに基づいてIP_MATCH以外のブレークポイントをチェックします。
        """
        for bp in self._breakpoints:
            if not bp.enabled or bp.register is None:
                continue
            if not 0 <= bp.register < len(snapshot.after):
                continue

            if bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if snapshot.after.get(bp.register) == bp.value:
                    return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                if snapshot.after.get(bp.register) != snapshot.before.get(bp.register):
                    return True
        return False

    def step_instruction(self) -> Optional[Snapshot]:
        """
        CPUを1命令分実行し、その結果のSnapshotを返します。停止している場合はNone。
        """
        ip = self._cpu.ip
        instruction = self._cpu.current_instruction()
        before = self._cpu.get_registers()
        if not self._cpu.step():
            return None

        self._step_count += 1
        snapshot = Snapshot(
            ip=ip,
            instruction=instruction,
            before=before,
            after=self._cpu.get_registers(),
            step_count=self._step_count
        )
        self._history.append(snapshot)
        return snapshot

    def step_back(self) -> Optional[Snapshot]:
        """
        実行履歴を1つ戻り、CPUのレジスタを復元します。
        戻った先のSnapshot（保持している履歴が尽きた場合はNone）を返します。
        """
        if not self._history:
            return None

        reverted = self._history.pop()
        self._cpu.restore_registers(reverted.before)
        self._step_count -= 1
        return self._history[-1] if self._history else None

    # @intent:responsibility 停止、ブレークポイント、またはステップ上限まで実行を継続します。
    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """
        CPUの実行を継続し、停止理由を返します。
        現在の命令ポインタにIP_MATCHブレークポイントがあっても、最初の1命令は実行します。
        """
        executed = 0

        while True:
            if max_steps is not None and executed >= max_steps:
                logger.info("Step limit %d reached at ip=%d", max_steps, self._cpu.ip)
                return StopReason.STEP_LIMIT

            if executed > 0 and self._check_ip_breakpoints(self._cpu.ip):
                logger.info("Breakpoint hit at ip=%d", self._cpu.ip)
                return StopReason.BREAKPOINT

            snapshot = self.step_instruction()
            if snapshot is None:
                logger.info("Program halted after %d steps", self._step_count)
                return StopReason.HALTED
            executed += 1

            if self._check_register_breakpoints(snapshot):
                logger.info("Breakpoint hit after ip=%d: %s", snapshot.ip, snapshot.instruction)
                return StopReason.BREAKPOINT

    # @intent:responsibility CPUを初期レジスタ状態へ戻し、履歴を破棄します。
    def reset(self) -> None:
        self._cpu.restore_registers(self._initial_registers)
        self._history.clear()
        self._step_count = 0
