from dataclasses import dataclass, field
from typing import Dict, List, Optional

@dataclass
class MachineConfig:
    register_count: int = 6
    ip_register: Optional[int] = None  # Noneの場合はプログラムの #ip 宣言を使う
    program_path: Optional[str] = None
    instructions: List[str] = field(default_factory=list)  # インラインの命令行 ("seti 5 0 1" など)
    initial_registers: Dict[int, int] = field(default_factory=dict)
    base_dir: str = "."  # program_pathの相対パス解決の基準
