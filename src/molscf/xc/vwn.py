from __future__ import annotations

import numpy as np

from .constants import DENSITY_EPS, VWN5_PARAMS
from .lda import _interpolated_correlation

__all__ = [
    "lda_c_vwn",
]


def _vwn_eps_and_depsdrs(rs: np.ndarray, polarized: bool) -> tuple[np.ndarray, np.ndarray]:
    r"""VWN5 关联能及其对 :math:`r_s` 的解析导数。

    采用 :math:`x=\sqrt{r_s}`，:math:`X(x) = x^2 + bx + c`，:math:`Q=\sqrt{4c-b^2}`：

    .. math::
        \varepsilon_c = A\Big\{\ln\frac{x^2}{X} + \frac{2b}{Q}\arctan\frac{Q}{2x+b}
        - \frac{bx_0}{X(x_0)}\Big[\ln\frac{(x-x_0)^2}{X} + \frac{2(b+2x_0)}{Q}\arctan\frac{Q}{2x+b}\Big]\Big\}

    再由 :math:`\partial x/\partial r_s = 1/(2\sqrt{r_s})` 得到 :math:`\partial \varepsilon_c/\partial r_s`。
    """
    A, x0, b, c = VWN5_PARAMS["polarized" if polarized else "unpolarized"]
    rs = np.asarray(rs, dtype=float)
    x = np.sqrt(np.maximum(rs, DENSITY_EPS))
    Q = np.sqrt(4.0 * c - b * b)
    X = x * x + b * x + c
    X0 = x0 * x0 + b * x0 + c
    atan = np.arctan(Q / (2.0 * x + b))
    k = b * x0 / X0

    eps = A * (
        np.log(x * x / X)
        + (2.0 * b / Q) * atan
        - k * (np.log((x - x0) ** 2 / X) + (2.0 * (b + 2.0 * x0) / Q) * atan)
    )

    # d/dx ln(x^2/X) = 2/x - (2x+b)/X；d/dx arctan 项 = -4b' / ((2x+b)^2 + Q^2)
    dlogX = (2.0 * x + b) / X
    denom_sq = (2.0 * x + b) ** 2 + Q * Q
    d_first = 2.0 / x - dlogX - 4.0 * b / denom_sq
    d_second = 2.0 / (x - x0) - dlogX - 4.0 * (b + 2.0 * x0) / denom_sq
    deps_dx = A * (d_first - k * d_second)
    return eps, deps_dx / (2.0 * x)


def lda_c_vwn(n_up: np.ndarray, n_dn: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    r"""VWN5 关联：返回 :math:`\varepsilon_c, v_c^\uparrow, v_c^\downarrow, e_c`。

    采用与 :func:`~molscf.xc.lda.lda_c_pz81` 相同的 :math:`f(\zeta)` 自旋插值与链式法则。
    """
    return _interpolated_correlation(n_up, n_dn, _vwn_eps_and_depsdrs)
