# register_core_tracer/core/cpu.py
"""
Core Layer (レジスタマシンCPU)

このモジュールは、レジスタファイルと命令ポインタの管理、および命令サイクルの駆動を提供します。
具体的な命令の振る舞いはopcodesモジュールに移譲されます。
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from register_core_tracer.core.instruction import Instruction
from register_core_tracer.core.state import Registers

DEFAULT_REGISTER_COUNT = 6


# @intent:responsibility 命令列を実行するレジスタマシン。システム内で唯一の可変エンティティです。
class Cpu:
    """
    レジスタファイル、命令ポインタとして使うレジスタ番号、命令列を保持するCPU。
    命令ポインタは専用レジスタではなく、レジスタファイル内の任意のスロットに割り当てられます。
    """
    # @intent:pre-condition `ip_register`はレジスタファイルの範囲内である必要があります。
    def __init__(self, instructions: Iterable[Instruction], ip_register: int,
                 register_count: int = DEFAULT_REGISTER_COUNT,
                 registers: Optional[Registers] = None):
        if register_count <= 0:
            raise ValueError("Register count must be a positive integer.")
        if not 0 <= ip_register < register_count:
            raise ValueError(f"Instruction pointer register {ip_register} out of range for {register_count} registers.")
        if registers is not None and len(registers) != register_count:
            raise ValueError(f"Expected {register_count} registers, got {len(registers)}.")

        self._instructions: List[Instruction] = list(instructions)
        self._ip_register = ip_register
        self._register_count = register_count
        self._registers: Registers = registers if registers is not None else Registers.zeros(register_count)

    @property
    def ip_register(self) -> int:
        return self._ip_register

    @property
    def register_count(self) -> int:
        return self._register_count

    @property
    def instructions(self) -> Sequence[Instruction]:
        return tuple(self._instructions)

    # @intent:responsibility 命令ポインタレジスタの現在値を返します。
    @property
    def ip(self) -> int:
        return self._registers.get(self._ip_register)

    def get(self, index: int) -> int:
        return self._registers.get(index)

    def set(self, index: int, value: int) -> None:
        self._registers = self._registers.set(index, value)

    # @intent:responsibility 現在のレジスタファイルのスナップショットを返します（不変なのでコピー不要）。
    def get_registers(self) -> Registers:
        return self._registers

    # @intent:responsibility デバッガのステップバック等で、レジスタファイル全体を置き換えます。
    def restore_registers(self, registers: Registers) -> None:
        if len(registers) != self._register_count:
            raise ValueError(f"Expected {self._register_count} registers, got {len(registers)}.")
        self._registers = registers

    # @intent:responsibility 全レジスタを0に戻します。命令列と命令ポインタの割り当ては維持されます。
    def reset(self) -> None:
        self._registers = Registers.zeros(self._register_count)

    # @intent:responsibility 指定範囲の逆アセンブル結果を返す。
    def disassemble(self, start: int = 0, length: Optional[int] = None) -> List[Tuple[int, str]]:
        from register_core_tracer.core import disassembler
        return disassembler.disassemble(self._instructions, start, length)

    # @intent:responsibility 現在の命令ポインタが指す命令を返します。範囲外ならNone。
    def current_instruction(self) -> Optional[Instruction]:
        ip = self.ip
        if 0 <= ip < len(self._instructions):
            return self._instructions[ip]
        return None

    # @intent:responsibility 1命令分のフェッチ・実行・命令ポインタ更新を行います。
    # @intent:rationale 命令ポインタの加算はオペコード実行の後に行う。命令自身がポインタレジスタへ
    #                  書き込んだ場合、その値に1を加えた位置へジャンプすることになる。
    def step(self) -> bool:
        """
        1命令を実行し、実行した場合はTrue、命令ポインタが範囲外で停止している場合はFalseを返します。
        停止時はレジスタを一切変更しません。
        """
        instruction = self.current_instruction()
        if instruction is None:
            return False

        registers = instruction.execute(self._registers)
        self._registers = registers.set(self._ip_register, registers.get(self._ip_register) + 1)
        return True

    # @intent:responsibility 停止するまで実行を継続します。
    # @intent:note 反復回数の上限はない。有限回で止めたい呼び出し側はstep()を自分で駆動する。
    def run(self) -> None:
        while self.step():
            pass
