r"""双电子排斥积分（ERI）
======================

原函数 :math:`(ss|ss)` 使用两次 Gauss 乘积：左矢 :math:`\mathbf P`（指数 :math:`\zeta=\alpha+\beta`），
右矢 :math:`\mathbf Q`（指数 :math:`\eta=\gamma+\delta`），

.. math::

    (00|00)^{(m)} = \frac{2\pi^{5/2}}{\zeta\eta\sqrt{\zeta+\eta}} K_{AB} K_{CD} F_m(T),
    \qquad T = \rho|\mathbf P-\mathbf Q|^2,\ \rho = \frac{\zeta\eta}{\zeta+\eta}

高角动量按 Head-Gordon–Pople 方案：

1. 垂直递推（VRR），先升左矢（:math:`\mathbf W = (\zeta\mathbf P + \eta\mathbf Q)/(\zeta+\eta)`）

   .. math::

       (\mathbf e+1_i,0|\mathbf f 0)^{(m)} = PA_i(\cdot)^{(m)} + WP_i(\cdot)^{(m+1)}
       + \frac{e_i}{2\zeta}\left[(\mathbf e-1_i)^{(m)} - \frac{\rho}{\zeta}(\mathbf e-1_i)^{(m+1)}\right]
       + \frac{f_i}{2(\zeta+\eta)}(\mathbf e 0|\mathbf f-1_i,0)^{(m+1)}

   右矢对称地使用 :math:`QC_i, WQ_i, \eta`；全部原函数四元组一次向量化完成；
2. 以收缩权重求和；
3. 水平递推（HRR）先作用于右矢（:math:`\mathbf C-\mathbf D`），再作用于左矢（:math:`\mathbf A-\mathbf B`）；
4. 乘分量归一化因子。

每个壳层角动量最高为 f（:data:`~molscf.basis.shell.MAX_L`），更高角动量抛出
:class:`~molscf.errors.UnsupportedBasisError`。
"""

from __future__ import annotations

from typing import Iterator

import numpy as np

from ..basis.primitive import radial_norm
from ..basis.shell import MAX_L, MolecularBasis, Shell, cartesian_components
from ..errors import UnsupportedBasisError
from .boys import boys, boys_array
from .recursion import horizontal_transfer, lower_index

__all__ = [
    "eri_ssss",
    "ShellPair",
    "shell_quartet",
    "eri_block",
    "unique_quartets",
    "quartet_permutations",
    "eri_tensor",
]

_ZERO = (0, 0, 0)
_PI52 = 2.0 * np.pi**2.5


def eri_ssss(alpha: float, A, beta: float, B, gamma: float, C, delta: float, D) -> float:
    """归一化 s 原函数的 :math:`(ss|ss)` 闭式。"""
    A, B, C, D = (np.asarray(x, dtype=float) for x in (A, B, C, D))
    zeta = alpha + beta
    eta = gamma + delta
    P = (alpha * A + beta * B) / zeta
    Q = (gamma * C + delta * D) / eta
    kab = np.exp(-alpha * beta / zeta * float((A - B) @ (A - B)))
    kcd = np.exp(-gamma * delta / eta * float((C - D) @ (C - D)))
    rho = zeta * eta / (zeta + eta)
    t = rho * float((P - Q) @ (P - Q))
    norm = float(radial_norm(alpha, 0) * radial_norm(beta, 0) * radial_norm(gamma, 0) * radial_norm(delta, 0))
    return norm * _PI52 / (zeta * eta * np.sqrt(zeta + eta)) * kab * kcd * boys(0, t)


class ShellPair:
    """一对壳层的原函数对数据，供多个四元组复用。

    Attributes
    ----------
    zeta : numpy.ndarray
        指数和，形状 ``(npair,)``。
    P : numpy.ndarray
        乘积中心，形状 ``(npair, 3)``。
    PA : numpy.ndarray
        :math:`\\mathbf P - \\mathbf A`。
    K : numpy.ndarray
        :math:`\\exp(-\\mu|\\mathbf A-\\mathbf B|^2)`。
    w : numpy.ndarray
        收缩权重之积（含径向归一化）。
    AB : numpy.ndarray
        :math:`\\mathbf A - \\mathbf B`。
    """

    def __init__(self, sa: Shell, sb: Shell):
        for sh in (sa, sb):
            if sh.l > MAX_L:
                raise UnsupportedBasisError(sh.l, MAX_L)
        self.a = sa
        self.b = sb
        alpha = np.repeat(sa.exponents, sb.nprim)
        beta = np.tile(sb.exponents, sa.nprim)
        self.zeta = alpha + beta
        self.AB = sa.center - sb.center
        self.P = (alpha[:, None] * sa.center + beta[:, None] * sb.center) / self.zeta[:, None]
        self.PA = self.P - sa.center
        self.K = np.exp(-alpha * beta / self.zeta * float(self.AB @ self.AB))
        self.w = np.outer(sa.weights, sb.weights).ravel()

    @property
    def la(self) -> int:
        return self.a.l

    @property
    def lb(self) -> int:
        return self.b.l


def shell_quartet(bra: ShellPair, ket: ShellPair) -> np.ndarray:
    """壳层四元组 :math:`(ab|cd)`，形状 ``(ncart_a, ncart_b, ncart_c, ncart_d)``。"""
    la, lb, lc, ld = bra.la, bra.lb, ket.la, ket.lb
    L = la + lb + lc + ld

    zeta = bra.zeta[:, None]
    eta = ket.zeta[None, :]
    zpe = zeta + eta
    rho = zeta * eta / zpe
    Pb = bra.P[:, None, :]
    Qk = ket.P[None, :, :]
    PQ = Pb - Qk
    T = rho * np.einsum("ijk,ijk->ij", PQ, PQ)
    W = (zeta[..., None] * Pb + eta[..., None] * Qk) / zpe[..., None]
    WP = W - Pb
    WQ = W - Qk
    PA = bra.PA[:, None, :]
    QC = ket.PA[None, :, :]

    pref = _PI52 / (zeta * eta * np.sqrt(zpe)) * bra.K[:, None] * ket.K[None, :]
    vals = {(_ZERO, _ZERO): pref * boys_array(L, T)}
    oo2z = 0.5 / zeta
    oo2e = 0.5 / eta
    oo2ze = 0.5 / zpe
    rz = rho / zeta
    re = rho / eta

    def vrr(e, f):
        key = (e, f)
        if key in vals:
            return vals[key]
        M = L - sum(e) - sum(f)
        if f == _ZERO:
            i = next(k for k in range(3) if e[k] > 0)
            e1 = lower_index(e, i)
            v1 = vrr(e1, f)
            val = PA[..., i] * v1[: M + 1] + WP[..., i] * v1[1 : M + 2]
            if e1[i] > 0:
                v2 = vrr(lower_index(e1, i), f)
                val = val + e1[i] * oo2z * (v2[: M + 1] - rz * v2[1 : M + 2])
        else:
            i = next(k for k in range(3) if f[k] > 0)
            f1 = lower_index(f, i)
            v1 = vrr(e, f1)
            val = QC[..., i] * v1[: M + 1] + WQ[..., i] * v1[1 : M + 2]
            if f1[i] > 0:
                v2 = vrr(e, lower_index(f1, i))
                val = val + f1[i] * oo2e * (v2[: M + 1] - re * v2[1 : M + 2])
            if e[i] > 0:
                v3 = vrr(lower_index(e, i), f1)
                val = val + e[i] * oo2ze * v3[1 : M + 2]
        vals[key] = val
        return val

    wts = bra.w[:, None] * ket.w[None, :]
    e_list = [e for n in range(la, la + lb + 1) for e in cartesian_components(n)]
    f_list = [f for n in range(lc, lc + ld + 1) for f in cartesian_components(n)]

    bra_table = {}
    for e in e_list:
        ket_table = {f: float(np.sum(wts * vrr(e, f)[0])) for f in f_list}
        bra_table[e] = horizontal_transfer(ket_table, lc, ld, ket.AB)
    block = horizontal_transfer(bra_table, la, lb, bra.AB)

    na = bra.a.component_norms
    nb = bra.b.component_norms
    nc = ket.a.component_norms
    nd = ket.b.component_norms
    return block * np.einsum("i,j,k,l->ijkl", na, nb, nc, nd)


def eri_block(sa: Shell, sb: Shell, sc: Shell, sd: Shell) -> np.ndarray:
    return shell_quartet(ShellPair(sa, sb), ShellPair(sc, sd))


def unique_quartets(nshell: int) -> Iterator[tuple[int, int, int, int]]:
    """按八重置换对称性去重的壳层四元组 ``(i>=j, k>=l, ij>=kl)``。"""
    for i in range(nshell):
        for j in range(i + 1):
            for k in range(i + 1):
                lmax = j if k == i else k
                for l in range(lmax + 1):
                    yield i, j, k, l


# 置换后的壳层序号与对应的块轴顺序
_PERMUTATIONS = (
    ((0, 1, 2, 3), (0, 1, 2, 3)),
    ((1, 0, 2, 3), (1, 0, 2, 3)),
    ((0, 1, 3, 2), (0, 1, 3, 2)),
    ((1, 0, 3, 2), (1, 0, 3, 2)),
    ((2, 3, 0, 1), (2, 3, 0, 1)),
    ((3, 2, 0, 1), (3, 2, 0, 1)),
    ((2, 3, 1, 0), (2, 3, 1, 0)),
    ((3, 2, 1, 0), (3, 2, 1, 0)),
)


def quartet_permutations(quartet: tuple[int, int, int, int], block: np.ndarray):
    """给出四元组全部互不相同的置换 ``(shell_indices, transposed_block)``。"""
    seen = set()
    for order, axes in _PERMUTATIONS:
        idx = tuple(quartet[o] for o in order)
        if idx in seen:
            continue
        seen.add(idx)
        yield idx, block.transpose(axes)


def eri_tensor(basis: MolecularBasis) -> np.ndarray:
    """完整 ERI 张量 :math:`(\\mu\\nu|\\lambda\\sigma)`，只用于小体系与验证。"""
    n = basis.nao
    shells = basis.shells
    out = np.zeros((n, n, n, n))
    pairs: dict = {}

    def pair(i, j):
        if (i, j) not in pairs:
            pairs[(i, j)] = ShellPair(shells[i], shells[j])
        return pairs[(i, j)]

    for q in unique_quartets(len(shells)):
        i, j, k, l = q
        block = shell_quartet(pair(i, j), pair(k, l))
        for idx, blk in quartet_permutations(q, block):
            sl = tuple(shells[s].slice for s in idx)
            out[sl] = blk
    return out
