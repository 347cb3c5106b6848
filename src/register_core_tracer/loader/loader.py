# register_core_tracer/loader/loader.py
"""
コードローダーモジュール。
`#ip N` 形式のプログラムテキストと、`Before:/After:` 形式のサンプルテキストの読み込みをサポートします。
"""
import re
from typing import List, Optional, Tuple

from register_core_tracer.common.errors import ProgramFormatError
from register_core_tracer.core.cpu import DEFAULT_REGISTER_COUNT, Cpu
from register_core_tracer.core.instruction import Instruction, Sample, UnknownInstruction
from register_core_tracer.core.opcodes import Opcode
from register_core_tracer.core.state import Registers

_IP_DIRECTIVE = re.compile(r"^#ip\s+(\S+)\s*$")
_REGISTER_LIST = re.compile(r"^(Before|After):\s*\[(.*)\]\s*$")
# サンプル部とプログラム部は3行以上の空行で区切られる
_SECTION_SEPARATOR = re.compile(r"\n[ \t]*\n[ \t]*\n[ \t]*\n")
_BLANK_LINES = re.compile(r"\n[ \t]*\n")


def _parse_int(token: str, what: str, line_num: int) -> int:
    try:
        return int(token)
    except ValueError:
        raise ProgramFormatError(f"Invalid {what}: '{token}'", line_num) from None


class ProgramLoader:
    """
    `#ip N` 宣言と `mnemonic a b c` 形式の命令行からCPUを構築するローダー。
    """
    def load_program_file(self, file_path: str, register_count: int = DEFAULT_REGISTER_COUNT,
                          ip_register: Optional[int] = None) -> Cpu:
        with open(file_path, 'r') as f:
            return self.load_program(f.read(), register_count, ip_register)

    # @intent:responsibility プログラムテキストを解析し、新しいCpuを返します。
    # @intent:pre-condition `ip_register`を指定しない場合、最初の空でない行は `#ip N` 宣言である必要があります。
    # @intent:note `ip_register`を指定した場合、テキスト中の `#ip` 宣言は読み飛ばされ、指定値が優先される。
    def load_program(self, text: str, register_count: int = DEFAULT_REGISTER_COUNT,
                     ip_register: Optional[int] = None) -> Cpu:
        declared_ip = None
        instructions: List[Instruction] = []

        for line_num, line in enumerate(text.splitlines(), 1):
            line = line.strip()
            if not line:
                continue

            if declared_ip is None and not instructions:
                match = _IP_DIRECTIVE.match(line)
                if match:
                    declared_ip = _parse_int(match.group(1), "ip", line_num)
                    continue
                if ip_register is None:
                    raise ProgramFormatError(f"Missing #ip declaration: {line}", line_num)

            instructions.append(self.parse_instruction(line, line_num))

        if ip_register is None:
            ip_register = declared_ip
        if ip_register is None:
            raise ProgramFormatError("Missing #ip declaration")

        try:
            return Cpu(instructions, ip_register, register_count)
        except ValueError as e:
            raise ProgramFormatError(str(e)) from e

    # @intent:responsibility 1行の命令 `mnemonic a b c` を解析します。
    def parse_instruction(self, line: str, line_num: int = 0) -> Instruction:
        parts = line.split()
        if len(parts) != 4:
            raise ProgramFormatError(f"Invalid instruction: {line}", line_num or None)
        try:
            opcode = Opcode.from_mnemonic(parts[0])
        except ProgramFormatError:
            raise ProgramFormatError(f"Invalid opcode: {parts[0]}", line_num or None) from None
        a = _parse_int(parts[1], "a", line_num)
        b = _parse_int(parts[2], "b", line_num)
        c = _parse_int(parts[3], "c", line_num)
        return Instruction(opcode, a, b, c)


class SampleLoader:
    """
    観測サンプルと、数値オペコードで書かれたプログラムを読み込むローダー。
    """
    def load_file(self, file_path: str) -> Tuple[List[Sample], List[UnknownInstruction]]:
        with open(file_path, 'r') as f:
            text = f.read()
        return self.load_samples(text), self.load_unknown_program(text)

    # @intent:responsibility サンプル部とプログラム部に分け、プログラム部の開始前にある行数を合わせて返します。
    @staticmethod
    def _split_sections(text: str) -> Tuple[str, str, int]:
        text = text.replace("\r\n", "\n")
        match = _SECTION_SEPARATOR.search(text)
        if not match:
            return text, "", 0
        return text[:match.start()], text[match.end():], text.count("\n", 0, match.end())

    # @intent:responsibility サンプル部を `Before:` / 命令 / `After:` の3行ブロックごとに解析します。
    def load_samples(self, text: str) -> List[Sample]:
        samples_section, _, _ = self._split_sections(text)
        samples = []
        line_offset = 1
        for block in _BLANK_LINES.split(samples_section):
            lines = [line.strip() for line in block.splitlines()]
            start_line = line_offset + next((i for i, line in enumerate(lines) if line), 0)
            line_offset += block.count("\n") + 2
            lines = [line for line in lines if line]
            if not lines:
                continue
            samples.append(self._parse_sample(lines, start_line))
        return samples

    def _parse_sample(self, lines: List[str], line_num: int) -> Sample:
        if len(lines) != 3:
            raise ProgramFormatError(f"Sample must have 3 lines, got {len(lines)}", line_num)

        before = self._parse_registers(lines[0], "Before", line_num)
        instruction = self.parse_unknown_instruction(lines[1], line_num + 1)
        after = self._parse_registers(lines[2], "After", line_num + 2)
        if len(before) != len(after):
            raise ProgramFormatError("Before/After register counts differ", line_num)
        return Sample(before, instruction, after)

    def _parse_registers(self, line: str, label: str, line_num: int) -> Registers:
        match = _REGISTER_LIST.match(line)
        if not match or match.group(1) != label:
            raise ProgramFormatError(f"Expected '{label}: [...]': {line}", line_num)
        tokens = [t.strip() for t in match.group(2).split(",")]
        if not all(tokens):
            raise ProgramFormatError(f"Invalid register list: {line}", line_num)
        return Registers.from_sequence(_parse_int(t, "register value", line_num) for t in tokens)

    # @intent:responsibility 区切りの後ろにあるプログラム部を数値命令列として解析します。
    # @intent:note エラーの行番号はファイル先頭からの行番号。
    def load_unknown_program(self, text: str) -> List[UnknownInstruction]:
        _, program_section, line_offset = self._split_sections(text)
        program = []
        for line_num, line in enumerate(program_section.splitlines(), line_offset + 1):
            line = line.strip()
            if line:
                program.append(self.parse_unknown_instruction(line, line_num))
        return program

    def parse_unknown_instruction(self, line: str, line_num: int = 0) -> UnknownInstruction:
        parts = line.split()
        if len(parts) != 4:
            raise ProgramFormatError(f"Invalid instruction: {line}", line_num or None)
        code, a, b, c = (_parse_int(p, "operand", line_num) for p in parts)
        return UnknownInstruction(code, a, b, c)
