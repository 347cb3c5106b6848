# tests/inference/test_engine.py
"""
register_core_tracer.inference.engineモジュールの単体テスト。
候補表の構築、消去ラウンド、全単射の検証、未知プログラムの実行を検証します。
"""
import logging

import pytest

from register_core_tracer.common.errors import ProgramFormatError, UnresolvableOpcodeMappingError
from register_core_tracer.core.instruction import Sample, UnknownInstruction
from register_core_tracer.core.opcodes import ALL_OPCODES, Opcode, apply
from register_core_tracer.core.state import Registers
from register_core_tracer.inference import (
    OpcodeResolver,
    behaves_like,
    build_candidate_map,
    count_ambiguous_samples,
    eliminate,
    execute_unknown_program,
    resolve_mapping,
)

# @intent:test_suite 観測サンプルからのオペコード推論を検証します。

# (before, a, b, c) の観測点。16種類のオペコードは全観測点を通した結果の組がすべて異なる。
OBSERVATION_POINTS = [
    ([10, 13, 7, 50], 0, 1, 3),
    ([7, 2, 3, 50], 2, 1, 3),
    ([5, 9, 3, 50], 0, 2, 3),
    ([1, 6, 9, 50], 1, 0, 3),
    ([0, 2, 2, 50], 1, 2, 3),
    ([0, 2, 3, 50], 1, 2, 3),
    ([4, 4, 0, 50], 0, 1, 3),
]

# 数値コード -> Opcode の期待される対応（順序を入れ替えた全単射）
EXPECTED_MAPPING = {code: ALL_OPCODES[(code * 5 + 3) % 16] for code in range(16)}
CODE_OF = {opcode: code for code, opcode in EXPECTED_MAPPING.items()}


def make_samples(code, opcode, point_indices=None):
    indices = range(len(OBSERVATION_POINTS)) if point_indices is None else point_indices
    samples = []
    for i in indices:
        values, a, b, c = OBSERVATION_POINTS[i]
        before = Registers.from_sequence(values)
        samples.append(Sample(before, UnknownInstruction(code, a, b, c), apply(opcode, a, b, c, before)))
    return samples


def make_all_samples(overrides=None):
    overrides = overrides or {}
    samples = []
    for code, opcode in EXPECTED_MAPPING.items():
        samples.extend(make_samples(code, opcode, overrides.get(opcode)))
    return samples


class TestBehavesLike:
    # @intent:test_case_scenario 1つのサンプルが mulr, addi, seti の3つと整合することを検証します。
    def test_example_sample(self):
        sample = Sample(
            Registers.from_sequence([3, 2, 1, 1]),
            UnknownInstruction(9, 2, 1, 2),
            Registers.from_sequence([3, 2, 2, 1]),
        )
        assert behaves_like(sample) == {Opcode.MULR, Opcode.ADDI, Opcode.SETI}
        assert count_ambiguous_samples([sample]) == 1
        assert count_ambiguous_samples([sample], threshold=4) == 0

    def test_out_of_range_interpretation_does_not_match(self):
        # b=7 はレジスタとしては範囲外。即値として解釈するオペコードだけが候補になり得る。
        before = Registers.from_sequence([1, 0, 0, 0])
        sample = Sample(before, UnknownInstruction(0, 0, 7, 1), Registers.from_sequence([1, 8, 0, 0]))
        assert behaves_like(sample) == {Opcode.ADDI}

    def test_observation_points_distinguish_every_opcode(self):
        for opcode in ALL_OPCODES:
            candidates = set(ALL_OPCODES)
            for sample in make_samples(0, opcode):
                candidates &= behaves_like(sample)
            assert candidates == {opcode}


class TestCandidateMap:
    def test_intersection_per_code(self):
        candidates = build_candidate_map(make_all_samples())
        assert set(candidates) == set(range(16))
        for code, opcode in EXPECTED_MAPPING.items():
            assert candidates[code] == {opcode}

    def test_code_without_samples_is_unconstrained(self):
        samples = [s for s in make_all_samples() if s.instruction.code != 4]
        candidates = build_candidate_map(samples)
        assert candidates[4] == set(ALL_OPCODES)

    def test_code_out_of_range(self):
        sample = make_samples(16, Opcode.ADDR, [0])[0]
        with pytest.raises(ProgramFormatError):
            build_candidate_map([sample])

    def test_eliminate_round(self):
        candidates = {
            0: {Opcode.ADDR},
            1: {Opcode.ADDR, Opcode.MULR},
            2: {Opcode.ADDR, Opcode.BANR, Opcode.MULR},
        }
        assert eliminate(candidates) is True
        assert candidates == {0: {Opcode.ADDR}, 1: {Opcode.MULR}, 2: {Opcode.BANR, Opcode.MULR}}
        assert eliminate(candidates) is True
        assert candidates[2] == {Opcode.BANR}
        assert eliminate(candidates) is False


class TestResolveMapping:
    # @intent:test_case_bijection 16個のコードが16個の異なるOpcodeに対応することを検証します。
    def test_bijection(self):
        mapping = resolve_mapping(make_all_samples())
        assert mapping == EXPECTED_MAPPING
        assert len(mapping) == 16
        assert set(mapping.values()) == set(ALL_OPCODES)

    def test_unique_candidates_need_no_rounds(self):
        resolver = OpcodeResolver()
        resolver.resolve(make_all_samples())
        assert resolver.rounds == 0

    # @intent:test_case_one_round 同じOpcodeを共有する2つのコードが1ラウンドで収束することを検証します。
    def test_shared_candidate_converges_in_one_round(self):
        overrides = {
            Opcode.GTIR: [0, 1, 2, 3, 6],   # -> {gtir, eqri}
            Opcode.EQRR: [0, 1, 2, 3, 4],   # -> {eqri, eqrr}
        }
        samples = make_all_samples(overrides)
        candidates = build_candidate_map(samples)
        assert candidates[CODE_OF[Opcode.GTIR]] == {Opcode.GTIR, Opcode.EQRI}
        assert candidates[CODE_OF[Opcode.EQRR]] == {Opcode.EQRI, Opcode.EQRR}

        resolver = OpcodeResolver()
        mapping = resolver.resolve(samples)
        assert resolver.rounds == 1
        assert mapping == EXPECTED_MAPPING

    def test_elimination_rounds_are_logged(self, caplog):
        overrides = {
            Opcode.GTIR: [0, 1, 2, 3, 6],
            Opcode.EQRR: [0, 1, 2, 3, 4],
        }
        with caplog.at_level(logging.DEBUG, logger="register_core_tracer.inference.engine"):
            resolve_mapping(make_all_samples(overrides))
        assert "Initial candidates:" in caplog.text
        assert "Round 1:" in caplog.text
        assert "Round 2:" not in caplog.text
        assert "Opcode mapping resolved in 1 elimination rounds" in caplog.text

    def test_elimination_is_idempotent_after_convergence(self):
        resolver = OpcodeResolver()
        mapping = resolver.resolve(make_all_samples({Opcode.EQRR: [0, 1, 2, 3, 4]}))
        candidates = {code: set(ops) for code, ops in resolver.candidates.items()}
        assert eliminate(candidates) is False
        assert {code: next(iter(ops)) for code, ops in candidates.items()} == mapping

    def test_chained_elimination(self):
        candidates = {code: {opcode} for code, opcode in EXPECTED_MAPPING.items()}
        candidates[0] = {EXPECTED_MAPPING[0], EXPECTED_MAPPING[1], EXPECTED_MAPPING[2]}
        candidates[1] = {EXPECTED_MAPPING[1], EXPECTED_MAPPING[2]}
        candidates[2] = {EXPECTED_MAPPING[2], EXPECTED_MAPPING[3]}
        resolver = OpcodeResolver()
        assert resolver.resolve_candidates(candidates) == EXPECTED_MAPPING
        assert resolver.rounds == 3
        # 渡した候補表は変更されない
        assert len(candidates[0]) == 3

    # @intent:test_case_unresolvable 2つのコードが同じ2候補で拮抗したままの場合、推論失敗を送出することを検証します。
    def test_permanent_tie_is_unresolvable(self):
        overrides = {
            Opcode.GTIR: [0, 1, 2, 3, 6],
            Opcode.EQRI: [0, 1, 2, 3, 6],
        }
        with pytest.raises(UnresolvableOpcodeMappingError) as exc_info:
            resolve_mapping(make_all_samples(overrides))
        tied = exc_info.value.candidates
        assert tied[CODE_OF[Opcode.GTIR]] == {Opcode.GTIR, Opcode.EQRI}
        assert tied[CODE_OF[Opcode.EQRI]] == {Opcode.GTIR, Opcode.EQRI}

    def test_contradicting_samples_are_unresolvable(self):
        samples = make_all_samples()
        # 別のOpcodeとしてしか説明できないサンプルを同じコードに混ぜると候補が空になる
        samples.extend(make_samples(CODE_OF[Opcode.ADDR], Opcode.MULR, [0]))
        with pytest.raises(UnresolvableOpcodeMappingError):
            resolve_mapping(samples)

    def test_duplicate_singletons_are_not_a_bijection(self):
        candidates = {code: {opcode} for code, opcode in EXPECTED_MAPPING.items()}
        candidates[1] = set(candidates[0])
        with pytest.raises(UnresolvableOpcodeMappingError):
            OpcodeResolver().resolve_candidates(candidates)

    def test_round_limit(self):
        candidates = {code: {opcode} for code, opcode in EXPECTED_MAPPING.items()}
        candidates[0] = {EXPECTED_MAPPING[0], EXPECTED_MAPPING[1]}
        candidates[1] = {EXPECTED_MAPPING[1], EXPECTED_MAPPING[2]}
        candidates[2] = {EXPECTED_MAPPING[2], EXPECTED_MAPPING[3]}
        candidates[3] = {EXPECTED_MAPPING[3], EXPECTED_MAPPING[4]}
        with pytest.raises(UnresolvableOpcodeMappingError):
            OpcodeResolver(max_rounds=2).resolve_candidates(candidates)
        assert OpcodeResolver().resolve_candidates(candidates) == EXPECTED_MAPPING


class TestExecuteUnknownProgram:
    def test_program_runs_on_zeroed_registers(self):
        program = [
            UnknownInstruction(CODE_OF[Opcode.SETI], 3, 0, 0),
            UnknownInstruction(CODE_OF[Opcode.SETI], 4, 0, 1),
            UnknownInstruction(CODE_OF[Opcode.MULR], 0, 1, 2),
            UnknownInstruction(CODE_OF[Opcode.ADDI], 2, 100, 0),
            UnknownInstruction(CODE_OF[Opcode.GTRI], 0, 111, 3),
        ]
        result = execute_unknown_program(EXPECTED_MAPPING, program)
        assert result.to_list() == [112, 4, 12, 1]

    def test_register_count(self):
        program = [UnknownInstruction(CODE_OF[Opcode.SETI], 7, 0, 5)]
        result = execute_unknown_program(EXPECTED_MAPPING, program, register_count=6)
        assert result.to_list() == [0, 0, 0, 0, 0, 7]

    def test_empty_program(self):
        assert execute_unknown_program(EXPECTED_MAPPING, []) == Registers.zeros(4)

    def test_unmapped_code(self):
        mapping = dict(EXPECTED_MAPPING)
        del mapping[3]
        with pytest.raises(ProgramFormatError):
            execute_unknown_program(mapping, [UnknownInstruction(3, 0, 0, 0)])

    def test_end_to_end_with_resolved_mapping(self):
        mapping = resolve_mapping(make_all_samples({Opcode.EQRR: [0, 1, 2, 3, 4]}))
        program = [
            UnknownInstruction(CODE_OF[Opcode.SETI], 5, 0, 1),
            UnknownInstruction(CODE_OF[Opcode.SETI], 5, 0, 2),
            UnknownInstruction(CODE_OF[Opcode.EQRR], 1, 2, 0),
        ]
        assert execute_unknown_program(mapping, program).get(0) == 1
