from __future__ import annotations

import numpy as np

from .constants import DENSITY_EPS, DIRAC_SPIN_CONSTANT, PZ81_PARAMS

__all__ = [
    "vx_dirac",
    "ex_dirac_density",
    "spin_interpolation",
    "lda_c_pz81",
]


def vx_dirac(n_sigma: np.ndarray) -> np.ndarray:
    r"""Dirac 交换势（自旋分辨）。

    .. math::
        v_x^\sigma(\mathbf r) = -\left(\frac{6}{\pi}\right)^{1/3} n_\sigma^{1/3}(\mathbf r).

    Parameters
    ----------
    n_sigma : numpy.ndarray
        单自旋数密度 :math:`n_\sigma`；非正密度的势定义为 0。

    Returns
    -------
    vx : numpy.ndarray
        :math:`v_x^\sigma`。

    Notes
    -----
    闭壳层 :math:`n_\sigma = n/2` 时化为熟知的 :math:`-(3n/\pi)^{1/3}`。
    """
    n_pos = np.clip(n_sigma, 0.0, None)
    return -DIRAC_SPIN_CONSTANT * np.cbrt(n_pos)


def ex_dirac_density(n_up: np.ndarray, n_dn: np.ndarray) -> np.ndarray:
    r"""Dirac 交换能量密度（体密度），单位 Hartree/a0^3。

    .. math::
        e_x(n_\uparrow, n_\downarrow) = -\frac{3}{4}\left(\frac{6}{\pi}\right)^{1/3}\left(n_\uparrow^{4/3}+n_\downarrow^{4/3}\right).
    """
    up = np.clip(n_up, 0.0, None)
    dn = np.clip(n_dn, 0.0, None)
    return -0.75 * DIRAC_SPIN_CONSTANT * (np.power(up, 4.0 / 3.0) + np.power(dn, 4.0 / 3.0))


def spin_interpolation(zeta: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    r""":math:`f(\zeta)=\dfrac{(1+\zeta)^{4/3}+(1-\zeta)^{4/3}-2}{2^{4/3}-2}` 及其导数。"""
    denom = 2.0 ** (4.0 / 3.0) - 2.0
    f = ((1.0 + zeta) ** (4.0 / 3.0) + (1.0 - zeta) ** (4.0 / 3.0) - 2.0) / denom
    fp = ((4.0 / 3.0) * ((1.0 + zeta) ** (1.0 / 3.0) - (1.0 - zeta) ** (1.0 / 3.0))) / denom
    return f, fp


def _pz81_eps_and_depsdrs(rs: np.ndarray, polarized: bool) -> tuple[np.ndarray, np.ndarray]:
    r"""PZ81 的 :math:`\varepsilon_c(r_s)` 与对 :math:`r_s` 的导数。

    .. math::
        \varepsilon_c(r_s) = \begin{cases}
        A\ln r_s + B + C r_s\ln r_s + D r_s, & r_s < 1,\\
        \dfrac{\gamma}{1+\beta_1\sqrt{r_s}+\beta_2 r_s}, & r_s \ge 1.\end{cases}
    """
    A, B, C, D, gamma, beta1, beta2 = PZ81_PARAMS["polarized" if polarized else "unpolarized"]
    rs = np.asarray(rs, dtype=float)
    eps = np.empty_like(rs)
    deps = np.empty_like(rs)

    high = rs < 1.0
    if np.any(high):
        r1 = rs[high]
        eps[high] = A * np.log(r1) + B + C * r1 * np.log(r1) + D * r1
        deps[high] = A / np.maximum(r1, DENSITY_EPS) + C * (np.log(r1) + 1.0) + D
    low = ~high
    if np.any(low):
        r2 = rs[low]
        sq = np.sqrt(r2)
        denom = 1.0 + beta1 * sq + beta2 * r2
        eps[low] = gamma / denom
        deps[low] = -gamma * (0.5 * beta1 / sq + beta2) / (denom * denom)
    return eps, deps


def lda_c_pz81(n_up: np.ndarray, n_dn: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    r"""PZ81 关联：返回 :math:`\varepsilon_c, v_c^\uparrow, v_c^\downarrow, e_c`。

    自旋插值 :math:`\varepsilon_c(n,\zeta)=\varepsilon_c^0(r_s) + [\varepsilon_c^1(r_s)-\varepsilon_c^0(r_s)] f(\zeta)`，
    势由链式法则

    .. math::
        v_c^\sigma=\varepsilon_c + n\frac{\partial\varepsilon_c}{\partial n}
        + n\frac{\partial\varepsilon_c}{\partial \zeta}\frac{\partial \zeta}{\partial n_\sigma}

    得到；:math:`e_c = n\,\varepsilon_c` 为关联能量体密度。
    """
    return _interpolated_correlation(n_up, n_dn, _pz81_eps_and_depsdrs)


def _interpolated_correlation(n_up, n_dn, eps_and_deriv):
    up = np.clip(n_up, 0.0, None)
    dn = np.clip(n_dn, 0.0, None)
    n = up + dn
    n_safe = np.maximum(n, DENSITY_EPS)

    rs = (3.0 / (4.0 * np.pi * n_safe)) ** (1.0 / 3.0)
    zeta = np.clip((up - dn) / n_safe, -1.0, 1.0)

    eps0, deps0 = eps_and_deriv(rs, False)
    eps1, deps1 = eps_and_deriv(rs, True)
    f, fp = spin_interpolation(zeta)

    eps = eps0 + (eps1 - eps0) * f
    deps_drs = deps0 + (deps1 - deps0) * f
    deps_dz = (eps1 - eps0) * fp

    # drs/dn = -rs/(3n)
    deps_dn = deps_drs * (-rs / (3.0 * n_safe))
    dz_up = (1.0 - zeta) / n_safe
    dz_dn = -(1.0 + zeta) / n_safe

    vcu = eps + n * deps_dn + n * deps_dz * dz_up
    vcd = eps + n * deps_dn + n * deps_dz * dz_dn
    return eps, vcu, vcd, n * eps
