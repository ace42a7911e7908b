r"""单电子积分
============

重叠、动能与核吸引积分，基于 Gauss 乘积定理：中心 :math:`\mathbf A,\mathbf B`、指数
:math:`\alpha,\beta` 的两个 Gauss 函数之积是中心

.. math::

    \mathbf P = \frac{\alpha\mathbf A + \beta\mathbf B}{\alpha+\beta}

的 Gauss 函数，前因子 :math:`K_{AB} = \exp(-\mu|\mathbf A-\mathbf B|^2)`，:math:`\mu=\alpha\beta/p`。

- s 函数的闭式见 :func:`overlap_ss`、:func:`kinetic_ss`、:func:`nuclear_ss`；
- 任意角动量（至 f）：重叠与动能由一维 Obara–Saika 递推 :func:`overlap_1d` 组合；核吸引先在
  左矢上做带辅助阶数 :math:`m` 的垂直递推

  .. math::

      (\mathbf a+1_i|\mathbf 0)^{(m)} = PA_i(\mathbf a|\mathbf 0)^{(m)} - PC_i(\mathbf a|\mathbf 0)^{(m+1)}
      + \frac{a_i}{2p}\left[(\mathbf a-1_i|\mathbf 0)^{(m)} - (\mathbf a-1_i|\mathbf 0)^{(m+1)}\right]

  再用 :func:`horizontal_transfer` 把角动量移到右矢。

所有壳层块对全部有序壳层对计算，组装后按 :math:`(M + M^T)/2` 对称化。
"""

from __future__ import annotations

import numpy as np

from ..basis.primitive import PrimitiveGaussian, radial_norm
from ..basis.shell import MolecularBasis, Shell, cartesian_components
from ..molecule import Molecule
from ..utils import symmetrize
from .boys import boys, boys_array
from .recursion import horizontal_transfer, lower_index, overlap_1d, raise_index

__all__ = [
    "overlap_ss",
    "kinetic_ss",
    "nuclear_ss",
    "primitive_overlap",
    "overlap_block",
    "kinetic_block",
    "nuclear_block",
    "overlap_matrix",
    "kinetic_matrix",
    "nuclear_matrix",
    "core_hamiltonian",
]


# ============================================================================
# s 函数闭式（归一化原函数）
# ============================================================================


def _ns(alpha: float) -> float:
    return float(radial_norm(alpha, 0))


def overlap_ss(alpha: float, A, beta: float, B) -> float:
    r""":math:`S = N_a N_b (\pi/p)^{3/2} K_{AB}`。"""
    A, B = np.asarray(A, float), np.asarray(B, float)
    p = alpha + beta
    mu = alpha * beta / p
    r2 = float(np.sum((A - B) ** 2))
    return _ns(alpha) * _ns(beta) * (np.pi / p) ** 1.5 * np.exp(-mu * r2)


def kinetic_ss(alpha: float, A, beta: float, B) -> float:
    r""":math:`T = \mu(3 - 2\mu R^2)\,S`。"""
    A, B = np.asarray(A, float), np.asarray(B, float)
    mu = alpha * beta / (alpha + beta)
    r2 = float(np.sum((A - B) ** 2))
    return mu * (3.0 - 2.0 * mu * r2) * overlap_ss(alpha, A, beta, B)


def nuclear_ss(alpha: float, A, beta: float, B, C, Z: float) -> float:
    r"""单个核的吸引积分 :math:`-\frac{2\pi Z}{p} K_{AB} F_0(p|\mathbf P-\mathbf C|^2) N_a N_b`。"""
    A, B, C = np.asarray(A, float), np.asarray(B, float), np.asarray(C, float)
    p = alpha + beta
    mu = alpha * beta / p
    P = (alpha * A + beta * B) / p
    r2 = float(np.sum((A - B) ** 2))
    t = p * float(np.sum((P - C) ** 2))
    return -2.0 * np.pi * Z / p * np.exp(-mu * r2) * boys(0, t) * _ns(alpha) * _ns(beta)


# ============================================================================
# 原函数对数据
# ============================================================================


class _PairData:
    """两壳层全部原函数对的 Gauss 乘积参数（展平为一维）。"""

    def __init__(self, sa: Shell, sb: Shell):
        a = sa.exponents[:, None]
        b = sb.exponents[None, :]
        p = (a + b).ravel()
        mu = (a * b).ravel() / p
        self.alpha = np.broadcast_to(a, (sa.nprim, sb.nprim)).ravel()
        self.beta = np.broadcast_to(b, (sa.nprim, sb.nprim)).ravel()
        self.p = p
        self.AB = sa.center - sb.center
        self.P = (self.alpha[:, None] * sa.center + self.beta[:, None] * sb.center) / p[:, None]
        self.PA = self.P - sa.center
        self.PB = self.P - sb.center
        self.K = np.exp(-mu * float(self.AB @ self.AB))
        self.w = np.outer(sa.weights, sb.weights).ravel()


def _tables_1d(pair: _PairData, imax: int, jmax: int) -> list[np.ndarray]:
    return [overlap_1d(imax, jmax, pair.PA[:, k], pair.PB[:, k], pair.p) for k in range(3)]


def primitive_overlap(g1: PrimitiveGaussian, g2: PrimitiveGaussian) -> float:
    """两个归一化原函数的重叠（不含收缩系数）；``primitive_overlap(g, g) == 1``。"""
    A = np.asarray(g1.center, float)
    B = np.asarray(g2.center, float)
    a, b = g1.exponent, g2.exponent
    p = a + b
    P = (a * A + b * B) / p
    pa, pb = P - A, P - B
    val = (np.pi / p) ** 1.5 * np.exp(-a * b / p * float((A - B) @ (A - B)))
    for k in range(3):
        E = overlap_1d(g1.lmn[k], g2.lmn[k], pa[k], pb[k], p)
        val *= E[g1.lmn[k], g2.lmn[k]]
    return float(val * g1.norm * g2.norm)


# ============================================================================
# 壳层块
# ============================================================================


def overlap_block(sa: Shell, sb: Shell) -> np.ndarray:
    """重叠块，形状 ``(ncart_a, ncart_b)``。"""
    pair = _PairData(sa, sb)
    Ex, Ey, Ez = _tables_1d(pair, sa.l, sb.l)
    pref = pair.w * pair.K * (np.pi / pair.p) ** 1.5
    out = np.empty((sa.ncart, sb.ncart))
    for i, (ax, ay, az) in enumerate(sa.components):
        for j, (bx, by, bz) in enumerate(sb.components):
            out[i, j] = np.sum(pref * Ex[ax, bx] * Ey[ay, by] * Ez[az, bz])
    return out * np.outer(sa.component_norms, sb.component_norms)


def kinetic_block(sa: Shell, sb: Shell) -> np.ndarray:
    r"""动能块。

    每个方向上

    .. math::

        T_{ij} = -\tfrac12\left[j(j-1)E_{i,j-2} - 2\beta(2j+1)E_{ij} + 4\beta^2 E_{i,j+2}\right]

    总动能 :math:`T = T_xS_yS_z + S_xT_yS_z + S_xS_yT_z`。
    """
    pair = _PairData(sa, sb)
    tabs = _tables_1d(pair, sa.l, sb.l + 2)
    beta = pair.beta

    def t1d(E, i, j):
        val = -2.0 * beta * (2 * j + 1) * E[i, j] + 4.0 * beta * beta * E[i, j + 2]
        if j >= 2:
            val = val + j * (j - 1) * E[i, j - 2]
        return -0.5 * val

    pref = pair.w * pair.K * (np.pi / pair.p) ** 1.5
    out = np.empty((sa.ncart, sb.ncart))
    for i, a in enumerate(sa.components):
        for j, b in enumerate(sb.components):
            s = [tabs[k][a[k], b[k]] for k in range(3)]
            t = [t1d(tabs[k], a[k], b[k]) for k in range(3)]
            out[i, j] = np.sum(pref * (t[0] * s[1] * s[2] + s[0] * t[1] * s[2] + s[0] * s[1] * t[2]))
    return out * np.outer(sa.component_norms, sb.component_norms)


def _nuclear_vrr(pair: _PairData, L: int, C: np.ndarray, Z: float) -> dict:
    """单个核的左矢垂直递推；返回 ``{a: array(L-|a|+1, npair)}``。"""
    PC = pair.P - C
    u = pair.p * np.einsum("ij,ij->i", PC, PC)
    F = boys_array(L, u)
    vals = {(0, 0, 0): (-Z * 2.0 * np.pi / pair.p * pair.K) * F}
    oo2p = 0.5 / pair.p
    for n in range(1, L + 1):
        M = L - n
        for a in cartesian_components(n):
            i = next(k for k in range(3) if a[k] > 0)
            a1 = lower_index(a, i)
            v1 = vals[a1]
            val = pair.PA[:, i] * v1[: M + 1] - PC[:, i] * v1[1 : M + 2]
            if a1[i] > 0:
                v2 = vals[lower_index(a1, i)]
                val = val + a1[i] * oo2p * (v2[: M + 1] - v2[1 : M + 2])
            vals[a] = val
    return vals


def nuclear_block(sa: Shell, sb: Shell, charges, coords) -> np.ndarray:
    """全部核的吸引积分块（含 :math:`-Z` 符号）。"""
    pair = _PairData(sa, sb)
    L = sa.l + sb.l
    table = {}
    for Z, C in zip(np.asarray(charges, float), np.asarray(coords, float)):
        vals = _nuclear_vrr(pair, L, C, Z)
        for n in range(sa.l, L + 1):
            for e in cartesian_components(n):
                table[e] = table.get(e, 0.0) + float(np.sum(pair.w * vals[e][0]))
    block = horizontal_transfer(table, sa.l, sb.l, pair.AB)
    return block * np.outer(sa.component_norms, sb.component_norms)


# ============================================================================
# 矩阵组装
# ============================================================================


def _assemble(basis: MolecularBasis, kernel) -> np.ndarray:
    M = np.zeros((basis.nao, basis.nao))
    for sa in basis:
        for sb in basis:
            M[sa.slice, sb.slice] = kernel(sa, sb)
    return symmetrize(M)


def overlap_matrix(basis: MolecularBasis) -> np.ndarray:
    return _assemble(basis, overlap_block)


def kinetic_matrix(basis: MolecularBasis) -> np.ndarray:
    return _assemble(basis, kinetic_block)


def nuclear_matrix(basis: MolecularBasis, molecule: Molecule) -> np.ndarray:
    charges = molecule.charges
    coords = molecule.coordinates
    return _assemble(basis, lambda sa, sb: nuclear_block(sa, sb, charges, coords))


def core_hamiltonian(basis: MolecularBasis, molecule: Molecule) -> np.ndarray:
    """:math:`H = T + V`。"""
    return kinetic_matrix(basis) + nuclear_matrix(basis, molecule)
