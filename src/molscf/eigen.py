r"""广义本征问题（Roothaan 步）
============================

求解 :math:`\mathbf F\mathbf C = \mathbf S\mathbf C\boldsymbol\varepsilon`：

1. 对角化 :math:`\mathbf S = \mathbf V\boldsymbol\lambda\mathbf V^T`，得对称正交化矩阵
   :math:`\mathbf X = \mathbf S^{-1/2} = \mathbf V\,\mathrm{diag}(\lambda^{-1/2})\mathbf V^T`；
2. :math:`\mathbf F' = \mathbf X^T\mathbf F\mathbf X`，对角化得 :math:`\mathbf U, \boldsymbol\varepsilon`；
3. :math:`\mathbf C = \mathbf X\mathbf U`。

:math:`\mathbf S` 的任一本征值不大于阈值即视为基组近线性相关，抛出
:class:`~molscf.errors.LinearDependenceError`，与迭代不收敛区分开。
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.linalg import eigh

from .errors import LinearDependenceError
from .utils import symmetrize

__all__ = [
    "MOSystem",
    "orthogonalizer",
    "solve_roothaan",
]


@dataclass
class MOSystem:
    r"""分子轨道系数与能量。

    Attributes
    ----------
    coefficients : numpy.ndarray
        AO→MO 系数矩阵 :math:`\mathbf C`（列为轨道）。
    energies : numpy.ndarray
        轨道能量（升序）。
    n_occ : int
        占据轨道数（之后为虚轨道）。
    """

    coefficients: np.ndarray
    energies: np.ndarray
    n_occ: int

    @property
    def occupied(self) -> np.ndarray:
        return self.coefficients[:, : self.n_occ]

    @property
    def virtual(self) -> np.ndarray:
        return self.coefficients[:, self.n_occ :]

    @property
    def homo_lumo_gap(self) -> float | None:
        if self.n_occ == 0 or self.n_occ >= self.energies.size:
            return None
        return float(self.energies[self.n_occ] - self.energies[self.n_occ - 1])


def orthogonalizer(S: np.ndarray, lindep_tol: float = 1e-10) -> np.ndarray:
    """对称（Löwdin）正交化矩阵 :math:`S^{-1/2}`。"""
    lam, V = eigh(symmetrize(S))
    if lam[0] <= lindep_tol:
        raise LinearDependenceError(lam[0], lindep_tol)
    return (V / np.sqrt(lam)) @ V.T


def solve_roothaan(F: np.ndarray, X: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """在正交基中对角化 Fock 矩阵。

    Parameters
    ----------
    F : numpy.ndarray
        对称 Fock / Kohn–Sham 矩阵。
    X : numpy.ndarray
        :func:`orthogonalizer` 给出的 :math:`S^{-1/2}`。

    Returns
    -------
    eps : numpy.ndarray
        轨道能量（升序）。
    C : numpy.ndarray
        AO 基下的 MO 系数。
    """
    Fp = symmetrize(X.T @ F @ X)
    eps, U = eigh(Fp)
    return eps, X @ U
