"""GTO 基函数：原函数、收缩轨道、壳层与基组模板。"""

from .primitive import PrimitiveGaussian, double_factorial, primitive_norm
from .shell import (
    MAX_L,
    ContractedOrbital,
    MolecularBasis,
    Shell,
    cartesian_components,
    ncart,
)
from .library import STO3G, BasisSet, ShellTemplate, build_basis, load_basis

__all__ = [
    "PrimitiveGaussian",
    "double_factorial",
    "primitive_norm",
    "MAX_L",
    "ContractedOrbital",
    "MolecularBasis",
    "Shell",
    "cartesian_components",
    "ncart",
    "STO3G",
    "BasisSet",
    "ShellTemplate",
    "build_basis",
    "load_basis",
]
