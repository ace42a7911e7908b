"""molscf: 高斯型轨道分子 SCF 教学与验证工具包。

本包提供：
- STO-3G 基组与笛卡尔 GTO 壳层；
- Obara–Saika 单电子积分与双电子排斥积分（含 Schwarz 筛选）；
- Coulomb/交换矩阵、DIIS 加速、Roothaan 本征求解；
- LDA（内置）与 GGA/meta-GGA（Libxc）交换-关联数值积分；
- RHF/UHF/RKS/UKS 自洽场驱动与结果导出。

单位：原子单位（Hartree、Bohr）。
"""

from .errors import (
    ElectronCountError,
    LinearDependenceError,
    SCFConvergenceError,
    SCFError,
    SetupError,
    SingularSystemError,
    UnresolvedBasisError,
    UnsupportedBasisError,
    UnsupportedFunctionalError,
)
from .molecule import Atom, Molecule
from .basis import BasisSet, MolecularBasis, Shell, build_basis, load_basis
from .grid import GridConfig, build_molecular_grid
from .methods import GGA, HF, LDA, Hybrid, MetaGGA, parse_method
from .scf import SCFConfig, SCFResult, SCFState, run_rhf, run_rks, run_scf, run_uhf, run_uks

__all__ = [
    "ElectronCountError",
    "LinearDependenceError",
    "SCFConvergenceError",
    "SCFError",
    "SetupError",
    "SingularSystemError",
    "UnresolvedBasisError",
    "UnsupportedBasisError",
    "UnsupportedFunctionalError",
    "Atom",
    "Molecule",
    "BasisSet",
    "MolecularBasis",
    "Shell",
    "build_basis",
    "load_basis",
    "GridConfig",
    "build_molecular_grid",
    "GGA",
    "HF",
    "LDA",
    "Hybrid",
    "MetaGGA",
    "parse_method",
    "SCFConfig",
    "SCFResult",
    "SCFState",
    "run_rhf",
    "run_rks",
    "run_scf",
    "run_uhf",
    "run_uks",
]

__version__ = "0.1.0"
