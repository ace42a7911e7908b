r"""DIIS 加速
==========

保存最近 :math:`M` 组 (Fock, 误差) 对，误差取对易子

.. math::

    \mathbf e = \mathbf F\mathbf P\mathbf S - \mathbf S\mathbf P\mathbf F

外推系数由

.. math::

    \begin{pmatrix} \mathbf B & -\mathbf 1 \\ -\mathbf 1^T & 0 \end{pmatrix}
    \begin{pmatrix} \mathbf c \\ \lambda \end{pmatrix}
    = \begin{pmatrix} \mathbf 0 \\ -1 \end{pmatrix}, \qquad B_{ij} = \langle \mathbf e_i, \mathbf e_j\rangle

给出（部分主元 Gauss 消元），新 Fock 为 :math:`\sum_i c_i \mathbf F_i`。

少于两组历史或方程奇异时 :meth:`DIIS.extrapolate` 返回 ``None``，调用者退回未外推的 Fock。

References
----------
.. [Pulay1980] Pulay, P. (1980) Chem. Phys. Lett. 73, 393
"""

from __future__ import annotations

from collections import deque

import numpy as np

from .errors import SingularSystemError

__all__ = [
    "commutator_error",
    "solve_linear_system",
    "DIIS",
]


def commutator_error(F: np.ndarray, P: np.ndarray, S: np.ndarray) -> np.ndarray:
    """:math:`FPS - SPF`（收敛时为零）。"""
    FPS = F @ P @ S
    return FPS - FPS.T


def solve_linear_system(A: np.ndarray, b: np.ndarray, pivot_tol: float = 1e-12) -> np.ndarray:
    """部分主元 Gauss 消元求解 :math:`Ax = b`。

    Raises
    ------
    SingularSystemError
        任一主元绝对值小于 ``pivot_tol``。
    """
    A = np.array(A, dtype=float)
    x = np.array(b, dtype=float)
    n = A.shape[0]
    if A.shape != (n, n) or x.shape != (n,):
        raise ValueError(f"方程组形状不匹配: A={A.shape}, b={x.shape}")
    for k in range(n):
        piv = k + int(np.argmax(np.abs(A[k:, k])))
        if abs(A[piv, k]) < pivot_tol:
            raise SingularSystemError(A[piv, k], pivot_tol)
        if piv != k:
            A[[k, piv]] = A[[piv, k]]
            x[[k, piv]] = x[[piv, k]]
        for r in range(k + 1, n):
            f = A[r, k] / A[k, k]
            A[r, k:] -= f * A[k, k:]
            x[r] -= f * x[k]
    for k in range(n - 1, -1, -1):
        x[k] = (x[k] - A[k, k + 1 :] @ x[k + 1 :]) / A[k, k]
    return x


class DIIS:
    """Pulay DIIS 外推器。

    Parameters
    ----------
    capacity : int
        历史容量 :math:`M`；溢出时丢弃最旧的一组。
    pivot_tol : float
        消元主元阈值。

    Notes
    -----
    入队的 Fock 与误差均复制保存，之后调用者对原数组的修改不影响历史。
    Fock 可以是任意形状（非限制性计算可把两个自旋叠成 ``(2, n, n)``）。
    """

    def __init__(self, capacity: int = 6, pivot_tol: float = 1e-12):
        if capacity < 2:
            raise ValueError(f"DIIS 容量必须 >= 2，当前值: {capacity}")
        self.capacity = int(capacity)
        self.pivot_tol = float(pivot_tol)
        self._focks: deque = deque(maxlen=self.capacity)
        self._errors: deque = deque(maxlen=self.capacity)
        self.last_coefficients: np.ndarray | None = None
        self.last_error_norm: float | None = None

    def __len__(self) -> int:
        return len(self._focks)

    def reset(self) -> None:
        self._focks.clear()
        self._errors.clear()
        self.last_coefficients = None
        self.last_error_norm = None

    def push(self, fock: np.ndarray, error: np.ndarray) -> None:
        self._focks.append(np.array(fock, dtype=float, copy=True))
        self._errors.append(np.array(error, dtype=float, copy=True).ravel())

    def extrapolate(self) -> np.ndarray | None:
        """外推 Fock；历史不足两组或方程奇异时返回 ``None``。"""
        m = len(self._focks)
        if m < 2:
            return None
        E = np.array(self._errors)
        gram = E @ E.T
        scale = float(np.max(np.diag(gram)))
        if scale <= 0.0:
            self.last_coefficients = None
            self.last_error_norm = 0.0
            return None
        B = np.empty((m + 1, m + 1))
        # 整体缩放不改变系数 c
        B[:m, :m] = gram / scale
        B[:m, m] = -1.0
        B[m, :m] = -1.0
        B[m, m] = 0.0
        rhs = np.zeros(m + 1)
        rhs[m] = -1.0
        try:
            sol = solve_linear_system(B, rhs, self.pivot_tol)
        except SingularSystemError:
            self.last_coefficients = None
            self.last_error_norm = None
            return None
        c = sol[:m]
        self.last_coefficients = c
        self.last_error_norm = float(np.linalg.norm(c @ E))
        return sum(ci * Fi for ci, Fi in zip(c, self._focks))
