import os
from typing import Optional
from register_core_tracer.common.errors import ProgramFormatError
from register_core_tracer.core.cpu import Cpu
from register_core_tracer.loader.loader import ProgramLoader
from .models import MachineConfig

# @intent:responsibility マシン構成（Config）に基づいてプログラムを読み込み、CPUを生成して初期状態を適用します。
class MachineBuilder:
    def __init__(self, loader: Optional[ProgramLoader] = None):
        self._loader = loader or ProgramLoader()

    def build(self, config: MachineConfig) -> Cpu:
        if config.program_path and config.instructions:
            raise ProgramFormatError("Specify either 'program' or 'instructions', not both")

        if config.program_path:
            path = config.program_path
            if not os.path.isabs(path):
                path = os.path.join(config.base_dir, path)
            with open(path, 'r') as f:
                text = f.read()
        elif config.instructions:
            text = "\n".join(config.instructions)
        else:
            raise ProgramFormatError("Machine config has no program")

        # @intent:note ip_registerが構成で指定された場合、プログラム中の #ip 宣言より優先する。
        #              テキストは書き換えずにローダーへ渡す。
        cpu = self._loader.load_program(text, config.register_count, config.ip_register)

        # 初期状態の適用
        self.apply_initial_state(cpu, config)
        return cpu

    # @intent:responsibility Configで定義された初期レジスタ値をCPUに適用します。
    # @intent:pre-condition レジスタ番号はレジスタ数の範囲内である必要があります。範囲外ならProgramFormatError。
    def apply_initial_state(self, cpu: Cpu, config: MachineConfig) -> None:
        """
        CPUをリセットし、Configから指定された初期値を適用します。
        """
        for index in config.initial_registers:
            if not 0 <= index < cpu.register_count:
                raise ProgramFormatError(
                    f"Initial register {index} out of range for {cpu.register_count} registers")

        cpu.reset()
        for index, value in config.initial_registers.items():
            cpu.set(index, value)
