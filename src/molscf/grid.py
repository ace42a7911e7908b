r"""分子数值积分网格
==================

原子中心网格 = 径向 × 角向，再用 Becke 模糊 Voronoi 划分为各原子分配权重：

.. math::

    \int f(\mathbf r)\,\mathrm d\mathbf r \approx \sum_A \sum_{i} w_A(\mathbf r_{Ai})\,
    w^{\mathrm{rad}}_i w^{\mathrm{ang}}_i\, f(\mathbf r_{Ai})

- 径向：第二类 Gauss–Chebyshev 节点，经 Becke 映射 :math:`r = r_m(1+x)/(1-x)`；
- 角向：:math:`\cos\theta` 方向 Gauss–Legendre × :math:`\phi` 方向等分（乘积格点）；
- 划分：Becke 单元函数 :math:`s(\mu) = \tfrac12[1 - p^{(k)}(\mu)]`，:math:`p(\mu) = \tfrac32\mu - \tfrac12\mu^3`，迭代 :math:`k` 次（默认 3）。

References
----------
.. [Becke1988] Becke, A. D. (1988) J. Chem. Phys. 88, 2547
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .molecule import ANGSTROM_TO_BOHR, Molecule

__all__ = [
    "GridConfig",
    "MolecularGrid",
    "radial_grid_becke",
    "angular_grid_product",
    "becke_partition",
    "build_molecular_grid",
]

# Bragg–Slater 半径（Å）
_BRAGG_RADII = {
    "H": 0.35, "He": 0.35, "Li": 1.45, "Be": 1.05, "B": 0.85,
    "C": 0.70, "N": 0.65, "O": 0.60, "F": 0.50, "Ne": 0.45,
}


@dataclass
class GridConfig:
    r"""网格参数。

    Attributes
    ----------
    n_radial : int
        每个原子的径向点数。
    n_theta : int
        :math:`\cos\theta` 方向 Gauss–Legendre 点数。
    n_phi : int
        :math:`\phi` 方向等分点数。
    becke_iterations : int
        Becke 单元函数的迭代次数 :math:`k`。
    """

    n_radial: int = 50
    n_theta: int = 14
    n_phi: int = 28
    becke_iterations: int = 3


@dataclass
class MolecularGrid:
    """积分点坐标 ``(npts, 3)`` 与权重 ``(npts,)``。"""

    points: np.ndarray
    weights: np.ndarray

    @property
    def size(self) -> int:
        return self.weights.size

    def integrate(self, values: np.ndarray) -> float:
        return float(np.dot(self.weights, values))


def radial_grid_becke(n: int, r_m: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
    r"""Becke 径向网格及 :math:`r^2` 已乘入的权重。

    第二类 Gauss–Chebyshev 求积

    .. math::

        \int_{-1}^{1} g(x)\,\mathrm dx \approx \sum_i \frac{\pi}{n+1}\sin^2\!\left(\frac{i\pi}{n+1}\right)
        \frac{g(x_i)}{\sqrt{1-x_i^2}}, \quad x_i = \cos\frac{i\pi}{n+1}

    与映射 :math:`r = r_m(1+x)/(1-x)`，:math:`\mathrm dr/\mathrm dx = 2r_m/(1-x)^2`。

    Parameters
    ----------
    n : int
        点数，要求 :math:`n \ge 2`。
    r_m : float
        映射的中点半径（Bohr），一半的点落在 :math:`r < r_m`。

    Returns
    -------
    r : numpy.ndarray
        径向坐标（升序）。
    w : numpy.ndarray
        权重，满足 :math:`\int_0^\infty f(r) r^2\,\mathrm dr \approx \sum_i w_i f(r_i)`。

    Examples
    --------
    >>> r, w = radial_grid_becke(60)
    >>> abs(np.sum(w * np.exp(-r * r)) - np.sqrt(np.pi) / 4) < 1e-8
    True
    """
    if n < 2:
        raise ValueError("n 必须 >= 2")
    if r_m <= 0:
        raise ValueError("要求 r_m > 0")
    i = np.arange(1, n + 1)
    theta = i * np.pi / (n + 1)
    x = np.cos(theta)
    wx = np.pi / (n + 1) * np.sin(theta) ** 2 / np.sqrt(1.0 - x * x)
    r = r_m * (1.0 + x) / (1.0 - x)
    dr = 2.0 * r_m / (1.0 - x) ** 2
    w = wx * dr * r * r
    order = np.argsort(r)
    return r[order], w[order]


def angular_grid_product(n_theta: int, n_phi: int) -> tuple[np.ndarray, np.ndarray]:
    r"""单位球面乘积格点，权重之和为 :math:`4\pi`。

    :math:`n_\theta` 点 Gauss–Legendre 对 :math:`\cos\theta` 精确到 :math:`2n_\theta-1` 次多项式，
    :math:`n_\phi` 点等分对 :math:`\phi` 精确到 :math:`n_\phi-1` 阶 Fourier 分量。
    """
    if n_theta < 1 or n_phi < 1:
        raise ValueError("n_theta 与 n_phi 必须 >= 1")
    ct, wt = np.polynomial.legendre.leggauss(n_theta)
    phi = 2.0 * np.pi * np.arange(n_phi) / n_phi
    st = np.sqrt(1.0 - ct * ct)
    pts = np.stack(
        [
            np.outer(st, np.cos(phi)).ravel(),
            np.outer(st, np.sin(phi)).ravel(),
            np.repeat(ct, n_phi),
        ],
        axis=1,
    )
    w = np.repeat(wt, n_phi) * (2.0 * np.pi / n_phi)
    return pts, w


def becke_partition(points: np.ndarray, coords: np.ndarray, owner: int, iterations: int = 3) -> np.ndarray:
    r"""Becke 划分权重 :math:`w_{\mathrm{owner}}(\mathbf r) = P_{\mathrm{owner}} / \sum_B P_B`。

    Parameters
    ----------
    points : numpy.ndarray
        网格点 ``(npts, 3)``。
    coords : numpy.ndarray
        原子坐标 ``(natm, 3)``。
    owner : int
        网格所属原子序号。
    iterations : int
        单元函数迭代次数。

    Returns
    -------
    numpy.ndarray
        划分权重 ``(npts,)``，对所有原子求和为 1。
    """
    natm = coords.shape[0]
    if natm == 1:
        return np.ones(points.shape[0])
    dist = np.linalg.norm(points[:, None, :] - coords[None, :, :], axis=2)
    cell = np.ones((points.shape[0], natm))
    for a in range(natm):
        for b in range(natm):
            if a == b:
                continue
            rab = np.linalg.norm(coords[a] - coords[b])
            mu = (dist[:, a] - dist[:, b]) / rab
            for _ in range(iterations):
                mu = 1.5 * mu - 0.5 * mu**3
            cell[:, a] *= 0.5 * (1.0 - mu)
    total = cell.sum(axis=1)
    return cell[:, owner] / total


def _midpoint_radius(symbol: str) -> float:
    r = _BRAGG_RADII.get(symbol, 1.0) * ANGSTROM_TO_BOHR
    # Becke：氢取完整半径，其余取一半
    return r if symbol in ("H", "He") else 0.5 * r


def build_molecular_grid(molecule: Molecule, config: GridConfig | None = None) -> MolecularGrid:
    """为分子构建 Becke 网格。"""
    cfg = config or GridConfig()
    coords = molecule.coordinates
    ang_pts, ang_w = angular_grid_product(cfg.n_theta, cfg.n_phi)
    all_pts = []
    all_w = []
    for ia, atom in enumerate(molecule.atoms):
        r, wr = radial_grid_becke(cfg.n_radial, _midpoint_radius(atom.symbol))
        pts = (r[:, None, None] * ang_pts[None, :, :]).reshape(-1, 3) + coords[ia]
        w = np.outer(wr, ang_w).ravel()
        w = w * becke_partition(pts, coords, ia, cfg.becke_iterations)
        keep = w > 0.0
        all_pts.append(pts[keep])
        all_w.append(w[keep])
    return MolecularGrid(points=np.concatenate(all_pts), weights=np.concatenate(all_w))
