r"""泛函后端
==========

数值积分层只与抽象后端对话：给出格点上的密度样本（:class:`DensitySample`），
取回每粒子能量与势分量（:class:`XCOutput`）。

- :class:`NativeLDABackend`：本包实现的 Dirac 交换 + VWN5/PZ81 关联，仅支持 LDA；
- :class:`LibxcBackend`：经 ``pyscf.dft.libxc`` 调用 Libxc，支持 LDA/GGA/meta-GGA。

句柄通过 :meth:`FunctionalBackend.acquire` 上下文管理器获得，任何退出路径都会释放。

约定（与 Libxc 一致）
--------------------
- 闭壳层：``rho`` 为总密度，:math:`\sigma = |\nabla\rho|^2`；
- 开壳层：``rho`` 为 :math:`(\rho_\alpha, \rho_\beta)`，
  :math:`\sigma = (\nabla\rho_\alpha\cdot\nabla\rho_\alpha,\ \nabla\rho_\alpha\cdot\nabla\rho_\beta,\ \nabla\rho_\beta\cdot\nabla\rho_\beta)`；
- :math:`\tau_\sigma = \tfrac12\sum_i |\nabla\psi_{i\sigma}|^2`。
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

import numpy as np

from ..errors import UnsupportedFunctionalError
from ..methods import Method, xc_family
from .constants import DENSITY_EPS
from .lda import ex_dirac_density, lda_c_pz81, vx_dirac
from .vwn import lda_c_vwn

__all__ = [
    "FAMILIES",
    "DEFAULT_CODES",
    "DensitySample",
    "XCOutput",
    "FunctionalHandle",
    "FunctionalBackend",
    "NativeLDABackend",
    "LibxcBackend",
    "default_backend",
]

FAMILIES = ("LDA", "GGA", "MGGA")

DEFAULT_CODES = {
    "LDA": "LDA_X,LDA_C_VWN",
    "GGA": "GGA_X_PBE,GGA_C_PBE",
    "MGGA": "MGGA_X_SCAN,MGGA_C_SCAN",
}


@dataclass
class DensitySample:
    r"""格点上的密度样本。

    Attributes
    ----------
    rho : numpy.ndarray
        ``(nspin, N)``；``nspin=1`` 时为总密度。
    grad : numpy.ndarray or None
        ``(nspin, 3, N)``，GGA/meta-GGA 需要。
    tau : numpy.ndarray or None
        ``(nspin, N)``，meta-GGA 需要。
    """

    rho: np.ndarray
    grad: np.ndarray | None = None
    tau: np.ndarray | None = None

    @property
    def nspin(self) -> int:
        return self.rho.shape[0]

    @property
    def npoints(self) -> int:
        return self.rho.shape[1]

    @property
    def sigma(self) -> np.ndarray | None:
        """约化梯度：闭壳层 ``(1, N)``，开壳层 ``(3, N)``。"""
        if self.grad is None:
            return None
        g = self.grad
        if self.nspin == 1:
            return np.einsum("xn,xn->n", g[0], g[0])[None]
        return np.stack(
            [
                np.einsum("xn,xn->n", g[0], g[0]),
                np.einsum("xn,xn->n", g[0], g[1]),
                np.einsum("xn,xn->n", g[1], g[1]),
            ]
        )


@dataclass
class XCOutput:
    r"""后端输出。

    Attributes
    ----------
    exc : numpy.ndarray
        每粒子能量 :math:`\varepsilon_{xc}`，``(N,)``；能量密度为 :math:`\rho\,\varepsilon_{xc}`。
    vrho : numpy.ndarray
        :math:`\partial e/\partial\rho_\sigma`，``(nspin, N)``。
    vsigma : numpy.ndarray or None
        :math:`\partial e/\partial\sigma`，``(1, N)`` 或 ``(3, N)``。
    vtau : numpy.ndarray or None
        :math:`\partial e/\partial\tau_\sigma`，``(nspin, N)``。
    """

    exc: np.ndarray
    vrho: np.ndarray
    vsigma: np.ndarray | None = None
    vtau: np.ndarray | None = None


class FunctionalHandle:
    """已打开的泛函句柄；关闭后不可再用。"""

    def __init__(self, family: str, xc_code: str, spin: int, evaluator: Callable[[DensitySample], XCOutput]):
        self.family = family
        self.xc_code = xc_code
        self.spin = spin
        self._evaluator = evaluator
        self.closed = False

    def compute(self, sample: DensitySample) -> XCOutput:
        if self.closed:
            raise RuntimeError(f"泛函句柄 {self.xc_code!r} 已关闭")
        if sample.nspin != self.spin + 1:
            raise ValueError(f"密度样本自旋分量数 {sample.nspin} 与句柄 spin={self.spin} 不符")
        if self.family in ("GGA", "MGGA") and sample.grad is None:
            raise ValueError(f"{self.family} 泛函需要密度梯度")
        if self.family == "MGGA" and sample.tau is None:
            raise ValueError("meta-GGA 泛函需要动能密度 tau")
        return self._evaluator(sample)

    def close(self) -> None:
        self.closed = True


class FunctionalBackend(ABC):
    """泛函后端抽象基类。

    子类声明 ``families`` 并实现 :meth:`_evaluator`。
    """

    families: tuple[str, ...] = ()

    def __init__(self):
        self._open = 0
        self._lock = threading.Lock()

    @property
    def open_handles(self) -> int:
        return self._open

    def supports(self, family: str) -> bool:
        return family in self.families

    @abstractmethod
    def _evaluator(self, family: str, xc_code: str, spin: int) -> Callable[[DensitySample], XCOutput]:
        """返回对样本求值的函数；无法处理时抛出 :class:`UnsupportedFunctionalError`。"""

    @contextmanager
    def acquire(self, family: str, xc_code: str | None = None, spin: int = 0) -> Iterator[FunctionalHandle]:
        """打开一个句柄，离开上下文时释放。

        Parameters
        ----------
        family : str
            ``"LDA"``、``"GGA"`` 或 ``"MGGA"``。
        xc_code : str, optional
            泛函代码，缺省取 :data:`DEFAULT_CODES`。
        spin : int
            0 为自旋非极化，1 为自旋极化。
        """
        if family not in FAMILIES or not self.supports(family):
            raise UnsupportedFunctionalError(f"{type(self).__name__} 不支持泛函族 {family!r}")
        if spin not in (0, 1):
            raise ValueError(f"spin 必须为 0 或 1，当前值: {spin}")
        code = xc_code or DEFAULT_CODES[family]
        handle = FunctionalHandle(family, code, spin, self._evaluator(family, code, spin))
        with self._lock:
            self._open += 1
        try:
            yield handle
        finally:
            handle.close()
            with self._lock:
                self._open -= 1


class NativeLDABackend(FunctionalBackend):
    """Dirac 交换 + VWN5（缺省）或 PZ81 关联。

    接受的代码片段（逗号分隔，大小写不敏感）：``LDA_X``、``LDA_C_VWN``、``LDA_C_PZ``。
    """

    families = ("LDA",)

    _CORRELATION = {
        "LDA_C_VWN": lda_c_vwn,
        "LDA_C_PZ": lda_c_pz81,
    }

    def _evaluator(self, family, xc_code, spin):
        exchange = False
        correlation = None
        for token in (t.strip().upper() for t in xc_code.split(",")):
            if not token:
                continue
            if token == "LDA_X":
                exchange = True
            elif token in self._CORRELATION and correlation is None:
                correlation = self._CORRELATION[token]
            else:
                raise UnsupportedFunctionalError(f"内置 LDA 后端无法识别泛函片段 {token!r}（代码 {xc_code!r}）")
        if not exchange and correlation is None:
            raise UnsupportedFunctionalError(f"空的泛函代码: {xc_code!r}")

        def evaluate(sample: DensitySample) -> XCOutput:
            if sample.nspin == 1:
                up = dn = 0.5 * sample.rho[0]
            else:
                up, dn = sample.rho[0], sample.rho[1]
            n = up + dn
            e = np.zeros_like(n)
            v_up = np.zeros_like(n)
            v_dn = np.zeros_like(n)
            if exchange:
                e += ex_dirac_density(up, dn)
                v_up += vx_dirac(up)
                v_dn += vx_dirac(dn)
            if correlation is not None:
                _, vcu, vcd, ec = correlation(up, dn)
                e += ec
                v_up += vcu
                v_dn += vcd
            exc = np.where(n > DENSITY_EPS, e / np.maximum(n, DENSITY_EPS), 0.0)
            vrho = v_up[None] if sample.nspin == 1 else np.stack([v_up, v_dn])
            return XCOutput(exc=exc, vrho=vrho)

        return evaluate


class LibxcBackend(FunctionalBackend):
    """经 ``pyscf.dft.libxc`` 调用 Libxc。

    ``pyscf`` 在首次取句柄时才导入；缺失时抛出 :class:`UnsupportedFunctionalError`。
    """

    families = FAMILIES

    def __init__(self):
        super().__init__()
        self._libxc = None

    def _module(self):
        if self._libxc is None:
            try:
                from pyscf.dft import libxc
            except ImportError as exc:
                raise UnsupportedFunctionalError("Libxc 后端需要安装 pyscf（pip install pyscf）") from exc
            self._libxc = libxc
        return self._libxc

    @staticmethod
    def _pack(sample: DensitySample, family: str, s: int) -> np.ndarray:
        rho = sample.rho[s]
        if family == "LDA":
            return rho
        rows = [rho[None], sample.grad[s]]
        if family == "MGGA":
            # 行顺序 (rho, dx, dy, dz, laplacian, tau)，laplacian 不参与
            rows.append(np.zeros((1, rho.size)))
            rows.append(sample.tau[s][None])
        return np.concatenate(rows, axis=0)

    def _evaluator(self, family, xc_code, spin):
        libxc = self._module()
        code = xc_code
        try:
            libxc.parse_xc(code)
        except (KeyError, ValueError) as exc:
            raise UnsupportedFunctionalError(f"Libxc 无法识别泛函代码 {code!r}") from exc

        def evaluate(sample: DensitySample) -> XCOutput:
            if spin == 0:
                rho_in = self._pack(sample, family, 0)
            else:
                rho_in = (self._pack(sample, family, 0), self._pack(sample, family, 1))
            exc, vxc = libxc.eval_xc(code, rho_in, spin=spin, deriv=1)[:2]
            # LDA 只返回 (vrho,)
            vrho = vxc[0]
            vsigma = vxc[1] if len(vxc) > 1 else None
            vtau = vxc[3] if len(vxc) > 3 else None
            npts = sample.npoints
            return XCOutput(
                exc=np.asarray(exc).reshape(npts),
                vrho=np.asarray(vrho).reshape(npts, -1).T,
                vsigma=None if family == "LDA" or vsigma is None else np.asarray(vsigma).reshape(npts, -1).T,
                vtau=None if family != "MGGA" or vtau is None else np.asarray(vtau).reshape(npts, -1).T,
            )

        return evaluate


def default_backend(method: Method) -> FunctionalBackend | None:
    """LDA 用内置后端，GGA/meta-GGA 用 Libxc；HF 返回 ``None``。"""
    family = xc_family(method)
    if family is None:
        return None
    if family == "LDA":
        return NativeLDABackend()
    return LibxcBackend()
