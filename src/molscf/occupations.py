from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .errors import ElectronCountError
from .molecule import Molecule

__all__ = [
    "Spin",
    "SpinOccupation",
    "electron_counts",
]


Spin = Literal["alpha", "beta"]


@dataclass(frozen=True)
class SpinOccupation:
    r"""分子轨道占据信息（按自旋通道）。

    Attributes
    ----------
    n_alpha : int
        :math:`\alpha` 电子数。
    n_beta : int
        :math:`\beta` 电子数。
    restricted : bool
        是否为限制性（闭壳层）处理；此时两自旋共享同一组轨道。
    """

    n_alpha: int
    n_beta: int
    restricted: bool

    @property
    def n_electrons(self) -> int:
        return self.n_alpha + self.n_beta

    @property
    def n_occ(self) -> int:
        """限制性计算中双占据轨道数。"""
        return self.n_alpha


def electron_counts(molecule: Molecule, restricted: bool, nao: int | None = None) -> SpinOccupation:
    """由电荷与自旋多重度推出各自旋电子数。

    Parameters
    ----------
    molecule : Molecule
        分子。
    restricted : bool
        是否为限制性（RHF/RKS）计算。
    nao : int, optional
        基函数数目；若给出则检查轨道数足以容纳占据。

    Returns
    -------
    SpinOccupation

    Notes
    -----
    - 未配对电子数 :math:`2S = M - 1`，要求 :math:`N_e - 2S` 为非负偶数（奇偶性一致）；
    - 限制性处理只接受闭壳层（:math:`M = 1`）。
    """
    n_elec = molecule.n_electrons
    n_unpaired = molecule.multiplicity - 1
    if n_elec < 0:
        raise ElectronCountError(f"电子数为负（净电荷 {molecule.charge} 过大）")
    if n_unpaired > n_elec or (n_elec - n_unpaired) % 2 != 0:
        raise ElectronCountError(
            f"电子数 {n_elec} 与自旋多重度 {molecule.multiplicity} 的奇偶性不一致"
        )
    n_beta = (n_elec - n_unpaired) // 2
    n_alpha = n_beta + n_unpaired
    if restricted and n_unpaired != 0:
        raise ElectronCountError(
            f"限制性计算要求闭壳层，当前多重度为 {molecule.multiplicity}；请改用非限制性处理"
        )
    if nao is not None and n_alpha > nao:
        raise ElectronCountError(f"基函数数目 {nao} 不足以容纳 {n_alpha} 个同自旋电子")
    return SpinOccupation(n_alpha=n_alpha, n_beta=n_beta, restricted=restricted)
