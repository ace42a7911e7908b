r"""分子几何
==========

原子与分子的不可变数据容器，以及核排斥能。

所有坐标以原子单位（Bohr）保存；元素表与单位换算常量为进程级只读表。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from .errors import UnresolvedBasisError

__all__ = [
    "ANGSTROM_TO_BOHR",
    "ELEMENTS",
    "atomic_number",
    "Atom",
    "Molecule",
]

#: 1 Å 对应的 Bohr 数
ANGSTROM_TO_BOHR = 1.0 / 0.529177210903

#: 元素符号 -> 原子序数（H–Ne）
ELEMENTS = {
    "H": 1, "He": 2, "Li": 3, "Be": 4, "B": 5,
    "C": 6, "N": 7, "O": 8, "F": 9, "Ne": 10,
}


def atomic_number(symbol: str) -> int:
    """元素符号转原子序数；未知符号抛出 :class:`UnresolvedBasisError`。"""
    try:
        return ELEMENTS[symbol.capitalize()]
    except KeyError:
        raise UnresolvedBasisError("periodic-table", symbol) from None


@dataclass(frozen=True)
class Atom:
    r"""原子。

    Attributes
    ----------
    symbol : str
        元素符号。
    Z : int
        原子序数（核电荷）。
    position : tuple[float, float, float]
        核坐标（Bohr）。
    """

    symbol: str
    Z: int
    position: tuple[float, float, float]

    @classmethod
    def from_symbol(cls, symbol: str, position: Sequence[float], unit: str = "bohr") -> "Atom":
        xyz = np.asarray(position, dtype=float)
        if xyz.shape != (3,):
            raise ValueError(f"坐标必须为三维向量，当前形状: {xyz.shape}")
        if unit.lower() == "angstrom":
            xyz = xyz * ANGSTROM_TO_BOHR
        elif unit.lower() != "bohr":
            raise ValueError(f"不支持的长度单位: {unit}")
        sym = symbol.capitalize()
        return cls(symbol=sym, Z=atomic_number(sym), position=tuple(float(x) for x in xyz))


@dataclass(frozen=True)
class Molecule:
    r"""分子：原子有序列表、净电荷与自旋多重度 :math:`2S+1`。"""

    atoms: tuple[Atom, ...]
    charge: int = 0
    multiplicity: int = 1

    def __post_init__(self):
        if len(self.atoms) == 0:
            raise ValueError("分子至少需要一个原子")
        if self.multiplicity < 1:
            raise ValueError(f"自旋多重度必须 >= 1，当前值: {self.multiplicity}")

    @classmethod
    def from_atoms(
        cls,
        atoms: Iterable[tuple[str, Sequence[float]]],
        charge: int = 0,
        multiplicity: int = 1,
        unit: str = "bohr",
    ) -> "Molecule":
        """由 ``(symbol, xyz)`` 序列构建分子。

        Examples
        --------
        >>> h2 = Molecule.from_atoms([("H", (0, 0, 0)), ("H", (0, 0, 1.4))])
        >>> h2.n_electrons
        2
        """
        return cls(
            atoms=tuple(Atom.from_symbol(s, xyz, unit=unit) for s, xyz in atoms),
            charge=int(charge),
            multiplicity=int(multiplicity),
        )

    @property
    def n_electrons(self) -> int:
        return sum(a.Z for a in self.atoms) - self.charge

    @property
    def coordinates(self) -> np.ndarray:
        """核坐标数组，形状 ``(natm, 3)``。"""
        return np.array([a.position for a in self.atoms], dtype=float)

    @property
    def charges(self) -> np.ndarray:
        return np.array([a.Z for a in self.atoms], dtype=float)

    def nuclear_repulsion(self) -> float:
        r"""核排斥能 :math:`\sum_{A<B} Z_A Z_B / R_{AB}`。"""
        R = self.coordinates
        Z = self.charges
        e = 0.0
        for a in range(len(Z)):
            for b in range(a):
                rab = float(np.linalg.norm(R[a] - R[b]))
                if rab < 1e-10:
                    raise ValueError(f"原子 {a} 与 {b} 重合，无法计算核排斥能")
                e += Z[a] * Z[b] / rab
        return e
