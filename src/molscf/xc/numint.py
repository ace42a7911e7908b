r"""交换-关联数值积分
==================

在分子网格上由密度矩阵构建 :math:`\rho`、:math:`\nabla\rho`、:math:`\tau`，
交给泛函后端求值，再组装 XC 矩阵与能量：

.. math::

    E_{xc} = \sum_g w_g\,\rho_g\,\varepsilon_{xc}(\mathbf r_g),

.. math::

    V^{xc}_{\mu\nu} = \sum_g w_g\Big[v_\rho\,\phi_\mu\phi_\nu
        + 2 v_\sigma\,\nabla\rho\cdot\nabla(\phi_\mu\phi_\nu)
        + \tfrac12 v_\tau\,\nabla\phi_\mu\cdot\nabla\phi_\nu\Big].

开壳层时 :math:`\alpha` 通道的梯度项为 :math:`(2v_{\sigma_{\alpha\alpha}}\nabla\rho_\alpha + v_{\sigma_{\alpha\beta}}\nabla\rho_\beta)\cdot\nabla(\phi_\mu\phi_\nu)`，
:math:`\beta` 通道对称。杂化泛函的 DFT 部分整体乘以 :math:`1-a`。
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from ..basis.shell import MolecularBasis
from ..errors import UnsupportedFunctionalError
from ..grid import MolecularGrid
from ..methods import Method, exchange_fraction, xc_code, xc_family
from ..utils import symmetrize
from .backend import DensitySample, FunctionalBackend, FunctionalHandle, default_backend

__all__ = [
    "XCResult",
    "ExchangeCorrelationEngine",
]


@dataclass
class XCResult:
    r"""一次 XC 积分的结果。

    Attributes
    ----------
    matrix : numpy.ndarray
        闭壳层 ``(n, n)``；开壳层 ``(2, n, n)``。
    exc : float
        :math:`E_{xc}`（已含杂化缩放）。
    int_rho_vxc : float
        :math:`\sum_\sigma \mathrm{tr}(P_\sigma V^{xc}_\sigma)`。
    n_electrons : float
        网格积分得到的电子数 :math:`\int\rho`。
    """

    matrix: np.ndarray
    exc: float
    int_rho_vxc: float
    n_electrons: float


class ExchangeCorrelationEngine:
    """XC 矩阵与能量的网格积分器。

    Parameters
    ----------
    basis : MolecularBasis
        分子基组。
    grid : MolecularGrid
        积分网格。
    method : Method
        LDA/GGA/MetaGGA 或其杂化。
    backend : FunctionalBackend, optional
        泛函后端，缺省由 :func:`~molscf.xc.backend.default_backend` 选择。
    rho_floor : float
        总密度低于此值的格点跳过。
    n_workers : int
        线程数；网格按点分块，每个线程持有自己的句柄与部分和。
    """

    def __init__(
        self,
        basis: MolecularBasis,
        grid: MolecularGrid,
        method: Method,
        backend: FunctionalBackend | None = None,
        rho_floor: float = 1e-12,
        n_workers: int = 1,
    ):
        family = xc_family(method)
        if family is None:
            raise UnsupportedFunctionalError("HF 没有交换-关联泛函")
        if n_workers < 1:
            raise ValueError(f"n_workers 必须 >= 1，当前值: {n_workers}")
        self.basis = basis
        self.grid = grid
        self.method = method
        self.family = family
        self.xc_code = xc_code(method)
        self.scale = 1.0 - exchange_fraction(method)
        self.backend = backend if backend is not None else default_backend(method)
        if not self.backend.supports(family):
            raise UnsupportedFunctionalError(f"{type(self.backend).__name__} 不支持泛函族 {family!r}")
        self.rho_floor = float(rho_floor)
        self.n_workers = int(n_workers)

        self.need_grad = family in ("GGA", "MGGA")
        self.need_tau = family == "MGGA"
        if self.need_grad:
            self._ao, self._dao = basis.evaluate(grid.points, deriv=1)
        else:
            self._ao = basis.evaluate(grid.points)
            self._dao = None
        self._weights = grid.weights

    def _chunks(self) -> list[slice]:
        n = self.grid.size
        size = max(1, -(-n // self.n_workers))
        return [slice(start, min(start + size, n)) for start in range(0, n, size)]

    def _sample(self, sl: slice, densities: list[np.ndarray]) -> tuple[DensitySample, np.ndarray]:
        ao = self._ao[sl]
        rho = []
        grad = []
        tau = []
        for D in densities:
            aoD = ao @ D
            rho.append(np.einsum("gi,gi->g", aoD, ao))
            if self.need_grad:
                dao = self._dao[:, sl]
                grad.append(2.0 * np.einsum("xgi,gi->xg", dao, aoD))
            if self.need_tau:
                tau.append(0.5 * sum(np.einsum("gi,gi->g", dao[k] @ D, dao[k]) for k in range(3)))
        rho = np.array(rho)
        mask = rho.sum(axis=0) >= self.rho_floor
        sample = DensitySample(
            rho=rho[:, mask],
            grad=np.array(grad)[:, :, mask] if self.need_grad else None,
            tau=np.array(tau)[:, mask] if self.need_tau else None,
        )
        return sample, mask

    def _block(self, handle: FunctionalHandle, sl: slice, densities: list[np.ndarray]):
        nspin = len(densities)
        nao = self.basis.nao
        V = np.zeros((nspin, nao, nao))
        sample, mask = self._sample(sl, densities)
        if sample.npoints == 0:
            return V, 0.0, 0.0
        out = handle.compute(sample)
        w = self._weights[sl][mask]
        ao = self._ao[sl][mask]
        rho_total = sample.rho.sum(axis=0)
        exc = float(np.dot(w, rho_total * out.exc))
        nelec = float(np.dot(w, rho_total))

        dao = self._dao[:, sl][:, mask] if self.need_grad else None
        for s in range(nspin):
            B = (0.5 * w * out.vrho[s])[:, None] * ao
            if self.need_grad:
                if nspin == 1:
                    gfac = 2.0 * out.vsigma[0] * sample.grad[0]
                else:
                    own = 0 if s == 0 else 2
                    gfac = 2.0 * out.vsigma[own] * sample.grad[s] + out.vsigma[1] * sample.grad[1 - s]
                B += np.einsum("xg,xgi->gi", w * gfac, dao)
            Vs = ao.T @ B
            Vs = Vs + Vs.T
            if self.need_tau:
                wt = 0.5 * w * out.vtau[s]
                for k in range(3):
                    Vs += dao[k].T @ (wt[:, None] * dao[k])
            V[s] = Vs
        return V, exc, nelec

    def _integrate(self, densities: list[np.ndarray]) -> tuple[np.ndarray, float, float]:
        spin = len(densities) - 1
        chunks = self._chunks()

        def work(sl):
            with self.backend.acquire(self.family, self.xc_code, spin) as handle:
                return self._block(handle, sl, densities)

        if self.n_workers == 1 or len(chunks) < 2:
            with self.backend.acquire(self.family, self.xc_code, spin) as handle:
                parts = [self._block(handle, sl, densities) for sl in chunks]
        else:
            with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
                parts = list(pool.map(work, chunks))
        V = sum(p[0] for p in parts)
        exc = sum(p[1] for p in parts)
        nelec = sum(p[2] for p in parts)
        return symmetrize(self.scale * V), self.scale * exc, nelec

    def restricted(self, P: np.ndarray) -> XCResult:
        """闭壳层：``P`` 为总密度矩阵。"""
        P = symmetrize(np.asarray(P, dtype=float))
        V, exc, nelec = self._integrate([P])
        return XCResult(matrix=V[0], exc=float(exc), int_rho_vxc=float(np.sum(P * V[0])), n_electrons=float(nelec))

    def unrestricted(self, Pa: np.ndarray, Pb: np.ndarray) -> XCResult:
        """开壳层：分别给出 :math:`P_\\alpha, P_\\beta`。"""
        Pa = symmetrize(np.asarray(Pa, dtype=float))
        Pb = symmetrize(np.asarray(Pb, dtype=float))
        V, exc, nelec = self._integrate([Pa, Pb])
        int_rho_vxc = float(np.sum(Pa * V[0]) + np.sum(Pb * V[1]))
        return XCResult(matrix=V, exc=float(exc), int_rho_vxc=int_rho_vxc, n_electrons=float(nelec))
