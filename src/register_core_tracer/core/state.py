# register_core_tracer/core/state.py
"""
Core Layer (レジスタファイル)

このモジュールは、マシンの状態（レジスタ群）を保持する不変のデータ構造を定義します。
"""
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple


# @intent:responsibility 固定長の整数レジスタ群を不変の値として保持します。
# @intent:rationale オペコード適用のたびに新しいインスタンスを返すことで、
#                  サンプルのbefore/afterを独立して保持・比較できるようにする。
@dataclass(frozen=True)
class Registers:
    """
    符号付き整数レジスタの不変スナップショット。
    長さはマシン構成で決まり（通常4または6）、インデックスは0始まりで密です。
    """
    values: Tuple[int, ...]

    @classmethod
    def zeros(cls, size: int) -> "Registers":
        if size <= 0:
            raise ValueError("Register count must be a positive integer.")
        return cls((0,) * size)

    @classmethod
    def from_sequence(cls, values: Iterable[int]) -> "Registers":
        return cls(tuple(int(v) for v in values))

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[int]:
        return iter(self.values)

    def __getitem__(self, index: int) -> int:
        return self.get(index)

    # @intent:pre-condition `index`は0以上レジスタ数未満である必要があります。負のインデックスも拒否します。
    def get(self, index: int) -> int:
        self._check_index(index)
        return self.values[index]

    # @intent:responsibility 1つのレジスタを書き換えた新しいスナップショットを返します（自身は変更しない）。
    def set(self, index: int, value: int) -> "Registers":
        self._check_index(index)
        values = list(self.values)
        values[index] = value
        return Registers(tuple(values))

    def to_list(self):
        return list(self.values)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.values):
            raise IndexError(f"Register {index} out of bounds for register file of size {len(self.values)}.")

    def __repr__(self) -> str:
        return f"Registers({list(self.values)})"
