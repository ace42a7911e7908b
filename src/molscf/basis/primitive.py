r"""笛卡尔 Gauss 原函数
=====================

.. math::

    g(\mathbf r) = c\,N\,x_A^{l_x} y_A^{l_y} z_A^{l_z}\,\mathrm e^{-\alpha|\mathbf r-\mathbf A|^2}

归一化常数只由指数与角动量三元组确定，每次访问时重新计算：

.. math::

    N = \left(\frac{2\alpha}{\pi}\right)^{3/4} \frac{(4\alpha)^{l/2}}
        {\sqrt{(2l_x-1)!!\,(2l_y-1)!!\,(2l_z-1)!!}}

拆分为只依赖 :math:`(\alpha, l)` 的径向部分 :func:`radial_norm` 与只依赖分量的
:func:`component_norm`；后者与指数无关，因而可以在收缩和水平递推之后再乘入。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

__all__ = [
    "double_factorial",
    "radial_norm",
    "component_norm",
    "primitive_norm",
    "PrimitiveGaussian",
]


def double_factorial(n: int) -> int:
    """双阶乘 :math:`n!!`，约定 :math:`(-1)!! = 0!! = 1`。"""
    out = 1
    while n > 1:
        out *= n
        n -= 2
    return out


def radial_norm(alpha, l: int):
    r""":math:`(2\alpha/\pi)^{3/4}(4\alpha)^{l/2}`，``alpha`` 可为数组。"""
    alpha = np.asarray(alpha, dtype=float)
    return (2.0 * alpha / np.pi) ** 0.75 * (4.0 * alpha) ** (0.5 * l)


def component_norm(lmn: Sequence[int]) -> float:
    lx, ly, lz = lmn
    return 1.0 / np.sqrt(
        double_factorial(2 * lx - 1) * double_factorial(2 * ly - 1) * double_factorial(2 * lz - 1)
    )


def primitive_norm(alpha: float, lmn: Sequence[int]) -> float:
    """单个笛卡尔原函数的归一化常数（自重叠为 1）。"""
    return float(radial_norm(alpha, sum(lmn))) * component_norm(lmn)


def _axis_factor(d: np.ndarray, l: int, alpha: float) -> tuple[np.ndarray, np.ndarray]:
    r"""一维因子 :math:`d^l` 及其导数 :math:`\partial_d (d^l e^{-\alpha d^2}) / e^{-\alpha d^2}`。"""
    val = d**l
    if l == 0:
        # 零次多项式：仅指数因子贡献
        der = -2.0 * alpha * d
    else:
        der = l * d ** (l - 1) - 2.0 * alpha * d ** (l + 1)
    return val, der


@dataclass(frozen=True)
class PrimitiveGaussian:
    r"""笛卡尔 Gauss 原函数。

    Attributes
    ----------
    exponent : float
        指数 :math:`\alpha > 0`。
    coefficient : float
        收缩系数 :math:`c`。
    center : tuple[float, float, float]
        中心 :math:`\mathbf A`（与所属壳层共享）。
    lmn : tuple[int, int, int]
        笛卡尔角动量 :math:`(l_x, l_y, l_z)`。
    """

    exponent: float
    coefficient: float
    center: tuple[float, float, float]
    lmn: tuple[int, int, int]

    def __post_init__(self):
        if not self.exponent > 0.0:
            raise ValueError(f"Gauss 指数必须为正，当前值: {self.exponent}")
        if len(self.lmn) != 3 or min(self.lmn) < 0:
            raise ValueError(f"角动量三元组非法: {self.lmn}")

    @property
    def l(self) -> int:
        return sum(self.lmn)

    @property
    def norm(self) -> float:
        return primitive_norm(self.exponent, self.lmn)

    def value(self, point: Sequence[float]) -> float:
        d = np.asarray(point, dtype=float) - np.asarray(self.center)
        lx, ly, lz = self.lmn
        poly = d[0] ** lx * d[1] ** ly * d[2] ** lz
        return float(self.coefficient * self.norm * poly * np.exp(-self.exponent * d @ d))

    def gradient(self, point: Sequence[float]) -> np.ndarray:
        """解析梯度（逐分量乘积法则）。"""
        d = np.asarray(point, dtype=float) - np.asarray(self.center)
        a = self.exponent
        fx, dx = _axis_factor(d[0], self.lmn[0], a)
        fy, dy = _axis_factor(d[1], self.lmn[1], a)
        fz, dz = _axis_factor(d[2], self.lmn[2], a)
        pref = self.coefficient * self.norm * np.exp(-a * d @ d)
        return pref * np.array([dx * fy * fz, fx * dy * fz, fx * fy * dz])
