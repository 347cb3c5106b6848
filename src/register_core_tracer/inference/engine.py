# register_core_tracer/inference/engine.py
"""
オペコード推論エンジン

観測サンプル（実行前レジスタ、数値オペコード+オペランド、実行後レジスタ）だけから、
数値オペコードとセマンティックなOpcodeの対応を復元します。
復元後は、その対応表を使って未知オペコードのプログラムを実行します。
"""
import logging
from typing import Dict, Iterable, Optional, Sequence, Set

from register_core_tracer.common.errors import ProgramFormatError, UnresolvableOpcodeMappingError
from register_core_tracer.common.types import OPCODE_COUNT, CandidateMap, OpcodeMapping
from register_core_tracer.core.instruction import Sample, UnknownInstruction
from register_core_tracer.core.opcodes import ALL_OPCODES, Opcode, apply
from register_core_tracer.core.state import Registers

logger = logging.getLogger(__name__)

# 消去ラウンドの上限。候補集合の最大サイズと同じ。
MAX_ELIMINATION_ROUNDS = OPCODE_COUNT


# @intent:responsibility サンプルの振る舞いを説明できる全てのOpcodeを返します。
# @intent:note 1つのサンプルに複数のOpcodeが一致するのは正常。その曖昧さを消去法で解消する。
def behaves_like(sample: Sample) -> Set[Opcode]:
    instruction = sample.instruction
    matches = set()
    for opcode in ALL_OPCODES:
        try:
            result = apply(opcode, instruction.a, instruction.b, instruction.c, sample.before)
        except IndexError:
            # オペランドがレジスタとして範囲外になる解釈は、このサンプルを説明できない
            continue
        if result == sample.after:
            matches.add(opcode)
    return matches


# @intent:responsibility `threshold`個以上のOpcodeと整合するサンプル数を数えます。
def count_ambiguous_samples(samples: Iterable[Sample], threshold: int = 3) -> int:
    return sum(1 for sample in samples if len(behaves_like(sample)) >= threshold)


def _check_code(code: int) -> None:
    if not 0 <= code < OPCODE_COUNT:
        raise ProgramFormatError(f"Numeric opcode {code} out of range 0-{OPCODE_COUNT - 1}")


# @intent:responsibility 数値オペコードごとに、全サンプルのbehaves_likeの積集合を候補として求めます。
def build_candidate_map(samples: Iterable[Sample]) -> CandidateMap:
    """
    最初のサンプルで候補を初期化し、以降のサンプルで積を取る。
    サンプルが1つもないコードは16種類すべてを候補として残す。
    """
    observed: Dict[int, Set[Opcode]] = {}
    for sample in samples:
        code = sample.instruction.code
        _check_code(code)
        compatible = behaves_like(sample)
        if code in observed:
            observed[code] &= compatible
        else:
            observed[code] = compatible

    candidates: CandidateMap = {}
    for code in range(OPCODE_COUNT):
        candidates[code] = observed.get(code, set(ALL_OPCODES))
    return candidates


# @intent:responsibility 消去を1ラウンド実行します。変化があればTrueを返します。
# @intent:rationale 確定したOpcodeは他のコードに属し得ないため、未確定の候補集合から取り除く。
def eliminate(candidates: CandidateMap) -> bool:
    resolved = {next(iter(ops)) for ops in candidates.values() if len(ops) == 1}
    changed = False
    for code, ops in candidates.items():
        if len(ops) > 1 and ops & resolved:
            candidates[code] = ops - resolved
            changed = True
    return changed


def _is_resolved(candidates: CandidateMap) -> bool:
    return all(len(ops) == 1 for ops in candidates.values())


def _format_candidates(candidates: CandidateMap) -> str:
    parts = []
    for code in sorted(candidates):
        names = ",".join(sorted(op.mnemonic for op in candidates[code]))
        parts.append(f"{code}={{{names}}}")
    return " ".join(parts)


# @intent:responsibility サンプル群から数値オペコードとOpcodeの全単射を求めます。
class OpcodeResolver:
    """
    候補表の構築と消去ラウンドの反復を行うクラス。
    解決後は `rounds` に実行した消去ラウンド数、`candidates` に最終候補表を保持します。
    """
    def __init__(self, max_rounds: int = MAX_ELIMINATION_ROUNDS):
        self._max_rounds = max_rounds
        self.rounds: int = 0
        self.candidates: CandidateMap = {}

    def resolve(self, samples: Iterable[Sample]) -> OpcodeMapping:
        return self.resolve_candidates(build_candidate_map(samples))

    # @intent:responsibility 構築済みの候補表に対して消去ラウンドを反復し、全単射を返します。
    # @intent:note 渡された候補表はコピーしてから絞り込む。
    def resolve_candidates(self, candidates: CandidateMap) -> OpcodeMapping:
        self.candidates = {code: set(ops) for code, ops in candidates.items()}
        self.rounds = 0
        logger.debug("Initial candidates: %s", _format_candidates(self.candidates))

        while not _is_resolved(self.candidates):
            if any(not ops for ops in self.candidates.values()):
                raise UnresolvableOpcodeMappingError(
                    "Unresolvable opcode mapping: a numeric opcode has no remaining candidates",
                    self.candidates)
            if self.rounds >= self._max_rounds:
                raise UnresolvableOpcodeMappingError(
                    f"Unresolvable opcode mapping: not converged after {self.rounds} rounds",
                    self.candidates)
            if not eliminate(self.candidates):
                raise UnresolvableOpcodeMappingError(
                    "Unresolvable opcode mapping: elimination made no progress", self.candidates)
            self.rounds += 1
            logger.debug("Round %d: %s", self.rounds, _format_candidates(self.candidates))

        mapping = {code: next(iter(ops)) for code, ops in self.candidates.items()}
        self._verify_bijection(mapping)
        logger.debug("Opcode mapping resolved in %d elimination rounds", self.rounds)
        return mapping

    # @intent:post-condition 16個のコードが16個の異なるOpcodeに対応していること。
    def _verify_bijection(self, mapping: OpcodeMapping) -> None:
        if set(mapping.values()) != set(ALL_OPCODES):
            raise UnresolvableOpcodeMappingError(
                "Unresolvable opcode mapping: resolved opcodes are not distinct", self.candidates)


def resolve_mapping(samples: Iterable[Sample]) -> OpcodeMapping:
    return OpcodeResolver().resolve(samples)


# @intent:responsibility 数値オペコードのプログラムを対応表で翻訳し、0初期化したレジスタ上で順に実行します。
def execute_unknown_program(mapping: OpcodeMapping, program: Sequence[UnknownInstruction],
                            register_count: int = 4,
                            registers: Optional[Registers] = None) -> Registers:
    """
    命令ポインタは使わず、命令列を先頭から順に1回ずつ適用した最終スナップショットを返す。
    """
    translated = []
    for index, instruction in enumerate(program):
        opcode = mapping.get(instruction.code)
        if opcode is None:
            raise ProgramFormatError(f"Numeric opcode {instruction.code} has no mapping (instruction {index})")
        translated.append(instruction.with_opcode(opcode))

    state = registers if registers is not None else Registers.zeros(register_count)
    for instruction in translated:
        state = instruction.execute(state)
    return state


