r"""Schwarz 筛选
==============

Cauchy–Schwarz 不等式给出任意 ERI 的上界：

.. math::

    |(\mu\nu|\lambda\sigma)| \le \sqrt{(\mu\nu|\mu\nu)}\,\sqrt{(\lambda\sigma|\lambda\sigma)}

按壳层对取 :math:`Q_{AB} = \sqrt{\max_{\mu\in A,\nu\in B}|(\mu\nu|\mu\nu)|}`，
若 :math:`Q_{AB} Q_{CD}` 低于截断（默认 1e-12）则整个四元组跳过。被跳过的积分视为有意的零贡献。

References
----------
.. [HaserAhlrichs] Häser, M. & Ahlrichs, R. (1989) J. Comput. Chem. 10, 104
"""

from __future__ import annotations

import numpy as np

from ..basis.shell import MolecularBasis
from .eri import ShellPair, shell_quartet

__all__ = [
    "DEFAULT_CUTOFF",
    "schwarz_bounds",
    "SchwarzScreen",
]

DEFAULT_CUTOFF = 1e-12


def schwarz_bounds(basis: MolecularBasis, pairs: dict | None = None) -> np.ndarray:
    """壳层对上界矩阵 :math:`Q_{AB}`，形状 ``(nshell, nshell)``。

    Parameters
    ----------
    basis : MolecularBasis
        分子基组。
    pairs : dict, optional
        ``{(i, j): ShellPair}`` 缓存；缺失的项会被创建并写回。
    """
    if pairs is None:
        pairs = {}
    ns = len(basis)
    Q = np.zeros((ns, ns))
    for i in range(ns):
        for j in range(i + 1):
            if (i, j) not in pairs:
                pairs[(i, j)] = ShellPair(basis[i], basis[j])
            pair = pairs[(i, j)]
            block = shell_quartet(pair, pair)
            na, nb = block.shape[:2]
            diag = block.reshape(na * nb, na * nb).diagonal()
            Q[i, j] = Q[j, i] = np.sqrt(np.max(np.abs(diag)))
    return Q


class SchwarzScreen:
    """基于壳层对上界的四元组筛选器。"""

    def __init__(self, basis: MolecularBasis, cutoff: float = DEFAULT_CUTOFF, pairs: dict | None = None):
        if cutoff < 0:
            raise ValueError(f"筛选截断必须非负，当前值: {cutoff}")
        self.cutoff = float(cutoff)
        self.bounds = schwarz_bounds(basis, pairs)

    def bound(self, i: int, j: int, k: int, l: int) -> float:
        return float(self.bounds[i, j] * self.bounds[k, l])

    def is_significant(self, i: int, j: int, k: int, l: int) -> bool:
        return self.bound(i, j, k, l) >= self.cutoff
