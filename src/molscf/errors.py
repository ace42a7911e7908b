"""异常类型
==========

SCF 引擎中可由调用者捕获的错误。

- 设置错误（:class:`SetupError` 及其子类）在迭代开始前抛出，属于致命配置问题；
- :class:`SingularSystemError` 由 DIIS 线性方程组求解抛出，在加速器内部就地恢复；
- :class:`SCFConvergenceError` 表示在 ``max_iter`` 内未达到收敛，携带最后的能量与密度以便诊断。
"""

from __future__ import annotations

__all__ = [
    "SCFError",
    "SetupError",
    "UnresolvedBasisError",
    "ElectronCountError",
    "LinearDependenceError",
    "UnsupportedBasisError",
    "UnsupportedFunctionalError",
    "SingularSystemError",
    "SCFConvergenceError",
]

_L_LABELS = "spdfghik"


class SCFError(Exception):
    """本包所有异常的基类。"""


class SetupError(SCFError, ValueError):
    """迭代开始前检测到的致命配置错误。"""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class UnresolvedBasisError(SetupError):
    def __init__(self, basis: str, element: str | None = None) -> None:
        if element is None:
            msg = f"未知基组: {basis!r}"
        else:
            msg = f"基组 {basis!r} 不包含元素 {element!r}"
        self.basis = basis
        self.element = element
        super().__init__(msg)


class ElectronCountError(SetupError):
    """电子数与自旋多重度不相容，或与所选自旋处理方式冲突。"""


class LinearDependenceError(SetupError):
    def __init__(self, min_eigenvalue: float, tol: float) -> None:
        self.min_eigenvalue = float(min_eigenvalue)
        self.tol = float(tol)
        super().__init__(
            f"重叠矩阵非正定（最小本征值 {self.min_eigenvalue:.3e} <= {self.tol:.1e}），基组近线性相关"
        )


class UnsupportedBasisError(SetupError):
    def __init__(self, l: int, l_max: int) -> None:
        self.l = int(l)
        self.l_max = int(l_max)
        label = _L_LABELS[l] if 0 <= l < len(_L_LABELS) else str(l)
        super().__init__(
            f"不支持角动量 l={l} ({label} 壳层)；最高支持 l={l_max} ({_L_LABELS[l_max]} 壳层)"
        )


class UnsupportedFunctionalError(SetupError):
    """泛函名称、族或嵌套方式无法被当前后端处理。"""


class SingularSystemError(SCFError, ArithmeticError):
    def __init__(self, pivot: float, tol: float) -> None:
        self.pivot = float(pivot)
        self.message = f"线性方程组奇异（主元 {pivot:.3e} < {tol:.1e}）"
        super().__init__(self.message)


class SCFConvergenceError(SCFError, RuntimeError):
    """超过最大迭代次数仍未收敛。

    Attributes
    ----------
    energy : float
        最后一次迭代的总能量（Hartree）。
    density : numpy.ndarray
        最后一次迭代的密度矩阵；非限制性计算为形状 ``(2, n, n)`` 的数组。
    iterations : int
        已执行的迭代数。
    history : list[dict]
        每步迭代的诊断记录。
    """

    def __init__(self, energy, density, iterations: int, history=None) -> None:
        self.energy = float(energy)
        self.density = density
        self.iterations = int(iterations)
        self.history = list(history or [])
        self.message = f"SCF 在 {iterations} 次迭代内未收敛（最后能量 {self.energy:.10f} Ha）"
        super().__init__(self.message)
