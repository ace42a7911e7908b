"""内置基组模板
==============

基组模板与几何无关：每个元素对应若干 ``(l, exponents, coefficients)`` 壳层。
STO-3G 的 sp 壳层拆分为共享指数的 s 与 p 壳层。

数据来源：Hehre, Stewart & Pople, J. Chem. Phys. 51, 2657 (1969)（EMSL Basis Set Exchange 格式）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from ..errors import UnresolvedBasisError
from ..molecule import Molecule
from .shell import MolecularBasis, Shell

__all__ = [
    "ShellTemplate",
    "BasisSet",
    "STO3G",
    "load_basis",
    "build_basis",
]


class ShellTemplate(NamedTuple):
    l: int
    exponents: tuple[float, ...]
    coefficients: tuple[float, ...]


@dataclass(frozen=True)
class BasisSet:
    """按元素组织的基组模板。"""

    name: str
    templates: dict[str, tuple[ShellTemplate, ...]] = field(default_factory=dict)

    def for_element(self, symbol: str) -> tuple[ShellTemplate, ...]:
        try:
            return self.templates[symbol]
        except KeyError:
            raise UnresolvedBasisError(self.name, symbol) from None

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "BasisSet":
        """由 ``{symbol: [(l, [(exp, coef), ...]), ...]}`` 构建模板。"""
        templates = {}
        for symbol, shells in data.items():
            items = []
            for l, prims in shells:
                exps = tuple(float(e) for e, _ in prims)
                coefs = tuple(float(c) for _, c in prims)
                items.append(ShellTemplate(int(l), exps, coefs))
            templates[symbol] = tuple(items)
        return cls(name=name, templates=templates)


# STO-3G 收缩系数（全部元素共用）
_C1S = (0.15432897, 0.53532814, 0.44463454)
_C2S = (-0.09996723, 0.39951283, 0.70011547)
_C2P = (0.15591627, 0.60768372, 0.39195739)


def _first_row(core: tuple[float, ...], valence: tuple[float, ...]) -> tuple[ShellTemplate, ...]:
    return (
        ShellTemplate(0, core, _C1S),
        ShellTemplate(0, valence, _C2S),
        ShellTemplate(1, valence, _C2P),
    )


STO3G = BasisSet(
    name="sto-3g",
    templates={
        "H": (ShellTemplate(0, (3.42525091, 0.62391373, 0.16885540), _C1S),),
        "He": (ShellTemplate(0, (6.36242139, 1.15892300, 0.31364979), _C1S),),
        "Li": _first_row((16.1195750, 2.9362007, 0.7946505), (0.6362897, 0.1478601, 0.0480887)),
        "Be": _first_row((30.1678710, 5.4951153, 1.4871927), (1.3148331, 0.3055389, 0.0993707)),
        "B": _first_row((48.7911130, 8.8873622, 2.4052670), (2.2369561, 0.5198205, 0.1690618)),
        "C": _first_row((71.6168370, 13.0450960, 3.5305122), (2.9412494, 0.6834831, 0.2222899)),
        "N": _first_row((99.1061690, 18.0523120, 4.8856602), (3.7804559, 0.8784966, 0.2857144)),
        "O": _first_row((130.7093200, 23.8088610, 6.4436083), (5.0331513, 1.1695961, 0.3803890)),
        "F": _first_row((166.6791300, 30.3608120, 8.2168207), (6.4648032, 1.5022812, 0.4885885)),
        "Ne": _first_row((207.0156100, 37.7081510, 10.2052970), (8.2463151, 1.9162662, 0.6232293)),
    },
)

_LIBRARY = {"sto-3g": STO3G, "sto3g": STO3G}


def load_basis(name: str) -> BasisSet:
    try:
        return _LIBRARY[name.lower()]
    except KeyError:
        raise UnresolvedBasisError(name) from None


def build_basis(molecule: Molecule, basis: str | BasisSet = "sto-3g") -> MolecularBasis:
    """把基组模板放到分子几何上，按原子顺序生成壳层并分配连续偏移。"""
    bset = load_basis(basis) if isinstance(basis, str) else basis
    shells = []
    for ia, atom in enumerate(molecule.atoms):
        for tpl in bset.for_element(atom.symbol):
            shells.append(
                Shell(
                    l=tpl.l,
                    center=atom.position,
                    exponents=tpl.exponents,
                    coefficients=tpl.coefficients,
                    atom_index=ia,
                )
            )
    return MolecularBasis(shells, name=bset.name)
