import logging
import os
import yaml
from typing import Dict, Any
from .models import MachineConfig

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {"register_count", "ip_register", "program", "instructions", "initial_registers"}

class ConfigLoader:
    def load_from_file(self, path: str) -> MachineConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        config = self._parse_config(data or {})
        config.base_dir = os.path.dirname(os.path.abspath(path))
        return config

    def load_from_string(self, text: str) -> MachineConfig:
        return self._parse_config(yaml.safe_load(text) or {})

    def _parse_config(self, data: Dict[str, Any]) -> MachineConfig:
        if not isinstance(data, dict):
            raise ValueError(f"Machine config must be a mapping, got {type(data).__name__}")

        for key in data:
            if key not in _KNOWN_KEYS:
                logger.warning("Ignoring unknown config key '%s'", key)

        register_count = self._parse_int(data.get("register_count", 6))

        ip_register = data.get("ip_register")
        if ip_register is not None:
            ip_register = self._parse_int(ip_register)

        # Parse Initial Registers
        raw_registers = data.get("initial_registers") or {}
        if not isinstance(raw_registers, dict):
            raise ValueError(f"initial_registers must be a mapping, got {type(raw_registers).__name__}")
        initial_registers = {}
        for index, value in raw_registers.items():
            initial_registers[self._parse_int(index)] = self._parse_int(value)

        raw_instructions = data.get("instructions") or []
        if not isinstance(raw_instructions, list):
            raise ValueError(f"instructions must be a list, got {type(raw_instructions).__name__}")
        instructions = [str(line) for line in raw_instructions]

        return MachineConfig(
            register_count=register_count,
            ip_register=ip_register,
            program_path=data.get("program"),
            instructions=instructions,
            initial_registers=initial_registers
        )

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            if value.startswith("0x"):
                return int(value, 16)
            return int(value)
        raise ValueError(f"Invalid integer format: {value}")
