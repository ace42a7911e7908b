r"""收缩轨道与壳层
================

壳层是同一中心、同一总角动量 :math:`l` 的一组收缩笛卡尔函数，包含
:math:`(l+1)(l+2)/2` 个分量。分量顺序固定为::

    for lx in 0..l:
        for ly in 0..l-lx:
            lz = l - lx - ly

该顺序同时决定 AO 偏移的分配；所有矩阵块、网格求值与积分都遵循同一顺序。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

import numpy as np

from ..errors import UnsupportedBasisError
from .primitive import PrimitiveGaussian, component_norm, radial_norm

__all__ = [
    "MAX_L",
    "ncart",
    "cartesian_components",
    "normalize_contraction",
    "ContractedOrbital",
    "Shell",
    "MolecularBasis",
]

#: 积分递推实现支持的最高角动量（f）
MAX_L = 3


def ncart(l: int) -> int:
    """角动量 :math:`l` 的笛卡尔分量数 :math:`(l+1)(l+2)/2`。"""
    return (l + 1) * (l + 2) // 2


def cartesian_components(l: int) -> list[tuple[int, int, int]]:
    out = []
    for lx in range(l + 1):
        for ly in range(l - lx + 1):
            out.append((lx, ly, l - lx - ly))
    return out


def normalize_contraction(exponents: np.ndarray, coefficients: np.ndarray, l: int) -> np.ndarray:
    r"""重新标定收缩系数使收缩函数的每个笛卡尔分量模长为 1。

    .. math::

        \langle\chi|\chi\rangle = \sum_{ij} c_i c_j N_i N_j
        \left(\frac{\pi}{p_{ij}}\right)^{3/2} \frac{1}{(2p_{ij})^{l}}, \quad p_{ij} = \alpha_i + \alpha_j

    其中 :math:`N_i` 为径向归一化常数；分量因子 :math:`(2l_k-1)!!` 与 :func:`component_norm` 抵消，
    因此结果与分量无关。
    """
    w = coefficients * radial_norm(exponents, l)
    p = exponents[:, None] + exponents[None, :]
    s = (np.pi / p) ** 1.5 / (2.0 * p) ** l
    norm2 = float(w @ s @ w)
    if norm2 <= 0.0:
        raise ValueError("收缩函数模长非正，系数非法")
    return coefficients / np.sqrt(norm2)


@dataclass(frozen=True)
class ContractedOrbital:
    """共享中心与角动量的原函数之和。"""

    primitives: tuple[PrimitiveGaussian, ...]

    def __post_init__(self):
        if len(self.primitives) == 0:
            raise ValueError("收缩轨道至少需要一个原函数")
        first = self.primitives[0]
        for p in self.primitives[1:]:
            if p.center != first.center or p.lmn != first.lmn:
                raise ValueError("收缩轨道内的原函数必须共享中心与角动量")

    @property
    def lmn(self) -> tuple[int, int, int]:
        return self.primitives[0].lmn

    def value(self, point: Sequence[float]) -> float:
        return sum(p.value(point) for p in self.primitives)

    def gradient(self, point: Sequence[float]) -> np.ndarray:
        return sum(p.gradient(point) for p in self.primitives)


@dataclass
class Shell:
    r"""GTO 壳层。

    Attributes
    ----------
    l : int
        总角动量（0..:data:`MAX_L`）。
    center : numpy.ndarray
        中心坐标（Bohr）。
    exponents : numpy.ndarray
        原函数指数。
    coefficients : numpy.ndarray
        收缩系数；构造时按 :func:`normalize_contraction` 重新标定。
    offset : int
        该壳层第一个分量在全局 AO 序列中的位置。
    atom_index : int
        所属原子序号（-1 表示未指定）。
    """

    l: int
    center: np.ndarray
    exponents: np.ndarray
    coefficients: np.ndarray
    offset: int = 0
    atom_index: int = -1
    weights: np.ndarray = field(init=False, repr=False)
    component_norms: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        if self.l < 0:
            raise ValueError(f"角动量必须非负，当前值: {self.l}")
        if self.l > MAX_L:
            raise UnsupportedBasisError(self.l, MAX_L)
        self.center = np.asarray(self.center, dtype=float).reshape(3)
        self.exponents = np.atleast_1d(np.asarray(self.exponents, dtype=float))
        self.coefficients = np.atleast_1d(np.asarray(self.coefficients, dtype=float))
        if self.exponents.size == 0 or self.exponents.shape != self.coefficients.shape:
            raise ValueError("指数与系数必须为等长非空序列")
        if np.any(self.exponents <= 0.0):
            raise ValueError("Gauss 指数必须为正")
        self.coefficients = normalize_contraction(self.exponents, self.coefficients, self.l)
        # 收缩权重（含径向归一化），积分与网格求值共用
        self.weights = self.coefficients * radial_norm(self.exponents, self.l)
        self.component_norms = np.array([component_norm(c) for c in self.components])

    @property
    def ncart(self) -> int:
        return ncart(self.l)

    @property
    def nprim(self) -> int:
        return self.exponents.size

    @property
    def components(self) -> list[tuple[int, int, int]]:
        return cartesian_components(self.l)

    @property
    def slice(self) -> slice:
        return slice(self.offset, self.offset + self.ncart)

    def orbitals(self) -> list[ContractedOrbital]:
        center = tuple(float(x) for x in self.center)
        out = []
        for lmn in self.components:
            prims = tuple(
                PrimitiveGaussian(float(a), float(c), center, lmn)
                for a, c in zip(self.exponents, self.coefficients)
            )
            out.append(ContractedOrbital(prims))
        return out

    def evaluate(self, points: np.ndarray, deriv: int = 0):
        """在一批点上求值全部分量。

        Parameters
        ----------
        points : numpy.ndarray
            形状 ``(npts, 3)``。
        deriv : int
            0 只返回函数值；1 同时返回梯度。

        Returns
        -------
        values : numpy.ndarray
            形状 ``(npts, ncart)``。
        grads : numpy.ndarray
            ``deriv=1`` 时返回，形状 ``(3, npts, ncart)``。
        """
        d = np.asarray(points, dtype=float) - self.center
        r2 = np.einsum("gi,gi->g", d, d)
        ex = np.exp(-np.outer(r2, self.exponents))
        radial = ex @ self.weights
        comps = self.components
        powers = [[d[:, k] ** n for n in range(self.l + 2)] for k in range(3)]
        values = np.empty((d.shape[0], len(comps)))
        for c, (lx, ly, lz) in enumerate(comps):
            values[:, c] = powers[0][lx] * powers[1][ly] * powers[2][lz] * radial
        values *= self.component_norms
        if deriv == 0:
            return values
        radial_d = ex @ (-2.0 * self.exponents * self.weights)
        grads = np.empty((3,) + values.shape)
        for c, lmn in enumerate(comps):
            poly = powers[0][lmn[0]] * powers[1][lmn[1]] * powers[2][lmn[2]]
            for k in range(3):
                g = poly * d[:, k] * radial_d
                if lmn[k] > 0:
                    lower = list(lmn)
                    lower[k] -= 1
                    g = g + lmn[k] * powers[0][lower[0]] * powers[1][lower[1]] * powers[2][lower[2]] * radial
                grads[k, :, c] = g
        grads *= self.component_norms
        return values, grads


@dataclass
class MolecularBasis:
    """整个分子的有序壳层列表（偏移连续且严格递增）。"""

    shells: list[Shell]
    name: str = ""

    def __post_init__(self):
        # 复制壳层再分配偏移，调用者持有的壳层不变
        shells = []
        offset = 0
        for sh in self.shells:
            shells.append(replace(sh, offset=offset))
            offset += sh.ncart
        self.shells = shells
        self.nao = offset

    def __len__(self) -> int:
        return len(self.shells)

    def __iter__(self):
        return iter(self.shells)

    def __getitem__(self, i: int) -> Shell:
        return self.shells[i]

    @property
    def offsets(self) -> list[int]:
        return [sh.offset for sh in self.shells]

    @property
    def slices(self) -> list[slice]:
        return [sh.slice for sh in self.shells]

    @property
    def shell_atoms(self) -> list[int]:
        return [sh.atom_index for sh in self.shells]

    @property
    def l_max(self) -> int:
        return max(sh.l for sh in self.shells)

    def orbitals(self) -> list[ContractedOrbital]:
        """按 AO 顺序展开的全部收缩轨道。"""
        out = []
        for sh in self.shells:
            out.extend(sh.orbitals())
        return out

    def evaluate(self, points: np.ndarray, deriv: int = 0):
        """全部 AO 在点集上的值（与梯度），列按 AO 偏移排列。"""
        npts = np.asarray(points).shape[0]
        values = np.empty((npts, self.nao))
        grads = np.empty((3, npts, self.nao)) if deriv else None
        for sh in self.shells:
            if deriv:
                v, g = sh.evaluate(points, deriv=1)
                grads[:, :, sh.slice] = g
            else:
                v = sh.evaluate(points)
            values[:, sh.slice] = v
        if deriv:
            return values, grads
        return values
