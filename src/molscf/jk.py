r"""Coulomb / 交换矩阵
====================

对通过 Schwarz 筛选的每个壳层四元组，把 ERI 块与密度收缩：

.. math::

    J_{\mu\nu} \mathrel{+}= D_{\lambda\sigma}(\mu\nu|\lambda\sigma), \qquad
    K_{\mu\lambda} \mathrel{+}= D_{\nu\sigma}(\mu\nu|\lambda\sigma)

只遍历八重对称性下互不相同的四元组，再把每个块散布到全部不同的置换位置上。
收缩本身不做任何近似；筛选是这一层唯一的优化。

闭壳层：总密度 :math:`P` 取 :math:`D = P/2`，Fock 为 :math:`H + 2J[D] - aK[D]`；
非限制性：:math:`J` 用 :math:`P_\alpha+P_\beta`，:math:`K_\sigma` 用 :math:`P_\sigma`。
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .basis.shell import MolecularBasis
from .integrals.eri import ShellPair, quartet_permutations, shell_quartet, unique_quartets
from .integrals.schwarz import DEFAULT_CUTOFF, SchwarzScreen
from .utils import as_density_stack, symmetrize

__all__ = [
    "JKBuilder",
    "build_jk",
]


class JKBuilder:
    """直接法 J/K 构建器。

    Parameters
    ----------
    basis : MolecularBasis
        分子基组。
    cutoff : float
        Schwarz 截断；``0`` 表示不筛选。
    n_workers : int
        线程数；大于 1 时四元组分块并行，各线程持有部分和，最后求和归约。
    cache : bool
        是否在内存中缓存四元组 ERI 块（几何不变，迭代之间可复用）。
    """

    def __init__(
        self,
        basis: MolecularBasis,
        cutoff: float = DEFAULT_CUTOFF,
        n_workers: int = 1,
        cache: bool = True,
    ):
        if n_workers < 1:
            raise ValueError(f"n_workers 必须 >= 1，当前值: {n_workers}")
        self.basis = basis
        self.n_workers = int(n_workers)
        self.cache = cache
        self._pairs: dict = {}
        self.screen = SchwarzScreen(basis, cutoff=cutoff, pairs=self._pairs)
        all_quartets = list(unique_quartets(len(basis)))
        self.quartets = [q for q in all_quartets if self.screen.is_significant(*q)]
        self.n_screened = len(all_quartets) - len(self.quartets)
        self._blocks: list | None = None

    def _pair(self, i: int, j: int) -> ShellPair:
        key = (i, j)
        if key not in self._pairs:
            self._pairs[key] = ShellPair(self.basis[i], self.basis[j])
        return self._pairs[key]

    def _block(self, q) -> np.ndarray:
        i, j, k, l = q
        return shell_quartet(self._pair(i, j), self._pair(k, l))

    def _blocks_for(self, indices: range) -> list:
        if self._blocks is not None:
            return [self._blocks[n] for n in indices]
        return [self._block(self.quartets[n]) for n in indices]

    def _accumulate(self, indices: range, D: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        shells = self.basis.shells
        J = np.zeros_like(D)
        K = np.zeros_like(D)
        for n, block in zip(indices, self._blocks_for(indices)):
            for idx, blk in quartet_permutations(self.quartets[n], block):
                p, q, r, s = (shells[x].slice for x in idx)
                J[:, p, q] += np.einsum("pqrs,xrs->xpq", blk, D[:, r, s])
                K[:, p, r] += np.einsum("pqrs,xqs->xpr", blk, D[:, q, s])
        return J, K

    def _chunks(self) -> list[range]:
        n = len(self.quartets)
        size = max(1, -(-n // self.n_workers))
        return [range(start, min(start + size, n)) for start in range(0, n, size)]

    def _ensure_cache(self) -> None:
        if not self.cache or self._blocks is not None:
            return
        if self.n_workers == 1:
            self._blocks = [self._block(q) for q in self.quartets]
            return
        # 先在主线程建好全部 ShellPair，避免并发写字典
        for i, j, k, l in self.quartets:
            self._pair(i, j)
            self._pair(k, l)
        with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
            parts = list(pool.map(lambda rng: [self._block(self.quartets[n]) for n in rng], self._chunks()))
        self._blocks = [b for part in parts for b in part]

    def build(self, density: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """对一个或一组密度构建 :math:`J, K`。

        Parameters
        ----------
        density : numpy.ndarray
            形状 ``(n, n)`` 或 ``(k, n, n)``。

        Returns
        -------
        J, K : numpy.ndarray
            与输入同形状，已对称化。
        """
        D, single = as_density_stack(density)
        if D.shape[-1] != self.basis.nao:
            raise ValueError(f"密度维度 {D.shape[-1]} 与基函数数 {self.basis.nao} 不符")
        self._ensure_cache()
        if self.n_workers == 1 or len(self.quartets) < 2:
            J, K = self._accumulate(range(len(self.quartets)), D)
        else:
            if self._blocks is None:
                for i, j, k, l in self.quartets:
                    self._pair(i, j)
                    self._pair(k, l)
            with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
                parts = list(pool.map(lambda rng: self._accumulate(rng, D), self._chunks()))
            J = sum(p[0] for p in parts)
            K = sum(p[1] for p in parts)
        J = symmetrize(J)
        K = symmetrize(K)
        if single:
            return J[0], K[0]
        return J, K


def build_jk(
    basis: MolecularBasis,
    density: np.ndarray,
    cutoff: float = DEFAULT_CUTOFF,
    n_workers: int = 1,
) -> tuple[np.ndarray, np.ndarray]:
    """一次性构建 :math:`J, K`（不保留缓存）。"""
    return JKBuilder(basis, cutoff=cutoff, n_workers=n_workers, cache=False).build(density)
