# register_core_tracer/core/disassembler.py
"""
命令列の逆アセンブラ。
"""
from typing import List, Optional, Sequence, Tuple

from register_core_tracer.core.instruction import Instruction


def format_instruction(instruction: Instruction) -> str:
    return f"{instruction.opcode.mnemonic} {instruction.a} {instruction.b} {instruction.c}"


# @intent:responsibility 指定された範囲の命令を (インデックス, テキスト) のリストとして返す。
def disassemble(instructions: Sequence[Instruction], start: int = 0,
                length: Optional[int] = None) -> List[Tuple[int, str]]:
    end = len(instructions) if length is None else min(len(instructions), start + length)
    return [(index, format_instruction(instructions[index])) for index in range(max(start, 0), end)]
