# register_core_tracer/core/opcodes.py
"""
Instruction Layer (オペコード定義と適用)

16種類の固定オペコードと、その純粋な状態遷移関数を定義します。
オペコード集合は閉じており、実行時に拡張されることはありません。
"""
from enum import Enum
from typing import Callable, Dict, List, Tuple

from register_core_tracer.common.errors import ProgramFormatError
from register_core_tracer.core.state import Registers


# @intent:responsibility オペランドa/bの解釈（レジスタ番号か即値か）による分類。
class OperandFamily(Enum):
    REGISTER_REGISTER = "rr"    # a, bともにレジスタ番号
    REGISTER_IMMEDIATE = "ri"   # aはレジスタ番号、bは即値
    IMMEDIATE_REGISTER = "ir"   # aは即値、bはレジスタ番号


# @intent:responsibility 16種類のセマンティックなオペコードを列挙します。値はニーモニック。
class Opcode(Enum):
    ADDR = "addr"
    ADDI = "addi"
    MULR = "mulr"
    MULI = "muli"
    BANR = "banr"
    BANI = "bani"
    BORR = "borr"
    BORI = "bori"
    SETR = "setr"
    SETI = "seti"
    GTIR = "gtir"
    GTRI = "gtri"
    GTRR = "gtrr"
    EQIR = "eqir"
    EQRI = "eqri"
    EQRR = "eqrr"

    @property
    def mnemonic(self) -> str:
        return self.value

    @property
    def family(self) -> OperandFamily:
        return OPCODE_MAP[self][3]

    # @intent:responsibility ニーモニック文字列からOpcodeを得ます。
    @classmethod
    def from_mnemonic(cls, mnemonic: str) -> "Opcode":
        try:
            return cls(mnemonic.strip().lower())
        except ValueError:
            raise ProgramFormatError(f"Invalid opcode: {mnemonic}") from None

    def __str__(self) -> str:
        return self.value


# --- Operand resolution ---

# Operand resolver: (registers, operand) -> value
OperandFunc = Callable[[Registers, int], int]
# Execution function: (value_a, value_b) -> value written to register c
ExecFunc = Callable[[int, int], int]


def _reg(registers: Registers, operand: int) -> int:
    return registers.get(operand)


def _imm(registers: Registers, operand: int) -> int:
    return operand


# --- Operations ---

def _add(x: int, y: int) -> int:
    return x + y


def _mul(x: int, y: int) -> int:
    return x * y


def _and(x: int, y: int) -> int:
    return x & y


def _or(x: int, y: int) -> int:
    return x | y


# @intent:note setr/setiではbは無視される。
def _assign(x: int, y: int) -> int:
    return x


def _gt(x: int, y: int) -> int:
    return 1 if x > y else 0


def _eq(x: int, y: int) -> int:
    return 1 if x == y else 0


RR = OperandFamily.REGISTER_REGISTER
RI = OperandFamily.REGISTER_IMMEDIATE
IR = OperandFamily.IMMEDIATE_REGISTER

# Opcode Entry: (Operand A resolver, Operand B resolver, Execution Function, Family)
OpcodeEntry = Tuple[OperandFunc, OperandFunc, ExecFunc, OperandFamily]

OPCODE_MAP: Dict[Opcode, OpcodeEntry] = {
    Opcode.ADDR: (_reg, _reg, _add, RR),
    Opcode.ADDI: (_reg, _imm, _add, RI),
    Opcode.MULR: (_reg, _reg, _mul, RR),
    Opcode.MULI: (_reg, _imm, _mul, RI),
    Opcode.BANR: (_reg, _reg, _and, RR),
    Opcode.BANI: (_reg, _imm, _and, RI),
    Opcode.BORR: (_reg, _reg, _or, RR),
    Opcode.BORI: (_reg, _imm, _or, RI),
    Opcode.SETR: (_reg, _imm, _assign, RI),
    Opcode.SETI: (_imm, _imm, _assign, IR),
    Opcode.GTIR: (_imm, _reg, _gt, IR),
    Opcode.GTRI: (_reg, _imm, _gt, RI),
    Opcode.GTRR: (_reg, _reg, _gt, RR),
    Opcode.EQIR: (_imm, _reg, _eq, IR),
    Opcode.EQRI: (_reg, _imm, _eq, RI),
    Opcode.EQRR: (_reg, _reg, _eq, RR),
}

# 列挙順の全オペコード
ALL_OPCODES: List[Opcode] = list(Opcode)


# @intent:responsibility オペコードを適用し、新しいレジスタスナップショットを返します。
# @intent:pre-condition レジスタとして解釈されるオペランドは範囲内である必要があります。範囲外ならIndexError。
def apply(opcode: Opcode, a: int, b: int, c: int, registers: Registers) -> Registers:
    """
    `registers` を変更せずに、オペコードの結果をレジスタcへ書き込んだ新しいRegistersを返す。
    """
    resolve_a, resolve_b, execute, _ = OPCODE_MAP[opcode]
    result = execute(resolve_a(registers, a), resolve_b(registers, b))
    return registers.set(c, result)
