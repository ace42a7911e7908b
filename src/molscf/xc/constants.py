"""XC 常量集中维护
====================

集中维护 LDA 相关常量，便于校准与统一管理。

参考与核对来源：
- Dirac/Slater 交换：自旋标度关系 :math:`E_x[n_\\uparrow,n_\\downarrow] = \\tfrac12(E_x[2n_\\uparrow] + E_x[2n_\\downarrow])`
- PZ81：Perdew & Zunger, Phys. Rev. B 23, 5048 (1981)
- VWN：Vosko, Wilk, Nusair, Can. J. Phys. 58, 1200 (1980)（VWN5 参数，对应 Libxc ``LDA_C_VWN``）

注意：自旋插值统一使用 :math:`f(\\zeta)`；闭壳层（:math:`\\zeta=0`）时与 Libxc 完全一致。
"""

from __future__ import annotations

import numpy as np

# 自旋分辨 Dirac 交换常数 (6/π)^{1/3}
DIRAC_SPIN_CONSTANT = (6.0 / np.pi) ** (1.0 / 3.0)

# PZ81 参数（非极化、全极化）：(A, B, C, D, gamma, beta1, beta2)
PZ81_PARAMS = {
    "unpolarized": (0.031091, -0.048, 0.0020, -0.0116, -0.1423, 1.0529, 0.3334),
    "polarized": (0.015545, -0.0269, 0.0007, -0.0048, -0.0843, 1.3981, 0.2611),
}

# VWN5 参数：(A, x0, b, c)
VWN5_PARAMS = {
    "unpolarized": (0.0310907, -0.10498, 3.72744, 12.9352),
    "polarized": (0.01554535, -0.32500, 7.06042, 18.0578),
}

# 数值下限（避免对零取对数或除零）
DENSITY_EPS = 1e-30
