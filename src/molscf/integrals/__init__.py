"""积分引擎：Boys 函数、单电子积分、ERI 与 Schwarz 筛选。"""

from .boys import boys, boys_array, boys_general, boys_sequence, boys_small_t
from .one_electron import (
    core_hamiltonian,
    kinetic_block,
    kinetic_matrix,
    kinetic_ss,
    nuclear_block,
    nuclear_matrix,
    nuclear_ss,
    overlap_block,
    overlap_matrix,
    overlap_ss,
    primitive_overlap,
)
from .eri import ShellPair, eri_block, eri_ssss, eri_tensor, shell_quartet
from .schwarz import DEFAULT_CUTOFF, SchwarzScreen, schwarz_bounds

__all__ = [
    "boys",
    "boys_array",
    "boys_general",
    "boys_sequence",
    "boys_small_t",
    "core_hamiltonian",
    "kinetic_block",
    "kinetic_matrix",
    "kinetic_ss",
    "nuclear_block",
    "nuclear_matrix",
    "nuclear_ss",
    "overlap_block",
    "overlap_matrix",
    "overlap_ss",
    "primitive_overlap",
    "ShellPair",
    "eri_block",
    "eri_ssss",
    "eri_tensor",
    "shell_quartet",
    "DEFAULT_CUTOFF",
    "SchwarzScreen",
    "schwarz_bounds",
]
