# register_core_tracer/core/instruction.py
"""
命令とサンプルの不変レコード。

ローダーが生成し、CPUと推論エンジンが消費する構造化データを定義します。
"""
from dataclasses import dataclass

from register_core_tracer.core.opcodes import Opcode, apply
from register_core_tracer.core.state import Registers


# @intent:responsibility オペコードが既知の命令。プログラム実行フェーズで使用されます。
@dataclass(frozen=True)
class Instruction:
    opcode: Opcode
    a: int
    b: int
    c: int

    def execute(self, registers: Registers) -> Registers:
        return apply(self.opcode, self.a, self.b, self.c, registers)

    def __str__(self) -> str:
        from register_core_tracer.core.disassembler import format_instruction
        return format_instruction(self)


# @intent:responsibility 数値オペコード（未対応付け）の命令。推論フェーズで使用されます。
@dataclass(frozen=True)
class UnknownInstruction:
    code: int
    a: int
    b: int
    c: int

    # @intent:responsibility 候補のOpcodeを当てはめた既知命令を返します。
    def with_opcode(self, opcode: Opcode) -> Instruction:
        return Instruction(opcode, self.a, self.b, self.c)


# @intent:responsibility 観測された (before, 命令, after) の組。オペコード推論の唯一の証拠。
@dataclass(frozen=True)
class Sample:
    before: Registers
    instruction: UnknownInstruction
    after: Registers
