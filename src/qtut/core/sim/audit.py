from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from qtut.core.ir.coeffs import eval_coeff_any
from qtut.core.sim.types import CompiledTermDense, MEProblemDense

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditOptions:
    max_terms: int = 200
    top_entries: int = 6
    check_shapes: bool = True
    check_hermitian_H: bool = True
    hermitian_atol: float = 1e-10
    check_rho0: bool = True
    trace_atol: float = 1e-8
    coeff_stats: bool = True
    coeff_area: bool = True


def _largest_entries(op: np.ndarray, k: int) -> List[tuple]:
    """(|value|, (row, col), value) for the k largest matrix elements."""
    flat = np.abs(op).ravel()
    k = min(int(k), flat.size)
    if k == 0:
        return []
    picks = np.argsort(flat)[::-1][:k]
    rows, cols = np.unravel_index(picks, op.shape)
    return [
        (float(flat[p]), (int(r), int(c)), complex(op[r, c]))
        for p, r, c in zip(picks, rows, cols)
    ]


def _hermiticity_error(op: np.ndarray) -> float:
    return float(np.max(np.abs(op - op.conj().T))) if op.size else 0.0


def _state_summary(rho0: np.ndarray, D: int, opt: AuditOptions) -> Dict[str, Any]:
    r = np.asarray(rho0, dtype=complex)
    if opt.check_shapes and r.shape not in ((D,), (D, D)):
        raise ValueError(f"rho0 has shape {r.shape}, expected {(D,)} or {(D, D)}")

    summary: Dict[str, Any] = {"shape": r.shape, "is_ket": r.ndim == 1}
    if r.ndim == 1:
        norm = float(np.linalg.norm(r))
        summary["norm"] = norm
        off = abs(norm - 1.0)
        what = "Initial ket is not normalized: |psi| = %.6g"
        value: Any = norm
    else:
        trace = complex(np.trace(r))
        summary["trace"] = trace
        summary["hermitian_max_abs_err"] = _hermiticity_error(r)
        off = abs(trace - 1.0)
        what = "Initial density matrix is not normalized: tr = %s"
        value = trace
    if opt.check_rho0 and off > opt.trace_atol:
        logger.warning(what, value)
    return summary


def _coeff_summary(term: CompiledTermDense, tlist: np.ndarray, time_unit_s: float,
                   opt: AuditOptions) -> Dict[str, Any]:
    c = eval_coeff_any(term.coeff, tlist, time_unit_s=time_unit_s)
    mag = np.abs(c)
    peak = int(np.argmax(mag))
    out: Dict[str, Any] = {
        "coeff_min_abs": float(mag.min()),
        "coeff_max_abs": float(mag[peak]),
        "coeff_peak_index": peak,
        "coeff_peak_t": float(tlist[peak]),
        "coeff_peak_val": complex(c[peak]),
    }
    if opt.coeff_area and tlist.size > 1:
        # pulse area in solver units; pi for a pi pulse on a qubit
        out["coeff_area"] = complex(np.trapezoid(c, tlist))
    return out


def _term_section(kind: str, terms: Sequence[CompiledTermDense], problem: MEProblemDense,
                  tlist: np.ndarray, opt: AuditOptions) -> Dict[str, Any]:
    D = problem.D
    items = []
    for idx, term in enumerate(terms[: opt.max_terms]):
        op = np.asarray(term.op, dtype=complex)
        if opt.check_shapes and op.shape != (D, D):
            raise ValueError(f"{kind} term {idx} op has shape {op.shape}, expected {(D, D)}")
        item: Dict[str, Any] = {
            "index": idx,
            "label": term.label,
            "op_shape": op.shape,
            "op_fro_norm": float(np.linalg.norm(op)),
            "op_top_entries": _largest_entries(op, opt.top_entries),
        }
        if kind == "H" and opt.check_hermitian_H:
            err = _hermiticity_error(op)
            item["op_hermitian_max_abs_err"] = err
            item["op_is_hermitian"] = err <= opt.hermitian_atol
        if opt.coeff_stats and tlist.size:
            item.update(_coeff_summary(term, tlist, problem.time_unit_s, opt))
        items.append(item)

    section: Dict[str, Any] = {"count": len(terms), "terms": items}
    if len(terms) > opt.max_terms:
        section["truncated"] = len(terms) - opt.max_terms
    return section


def audit_problem_dense(
    problem: MEProblemDense,
    *,
    options: Optional[AuditOptions] = None,
) -> Dict[str, Any]:
    """
    Sanity report on a compiled problem, returned as plain dicts.

    Shape mismatches raise; an unnormalized initial state only logs a
    warning. Every H/C/E term gets its norm, largest entries and coefficient
    range (with the integrated area, which is the rotation angle of a
    resonant pulse). Hamiltonian operators are flagged when not Hermitian.
    """
    opt = options or AuditOptions()
    tlist = np.asarray(problem.tlist, dtype=float)
    dims = tuple(int(d) for d in problem.dims)

    report: Dict[str, Any] = {"dims": dims, "D": problem.D, "tlist_N": tlist.size}
    if tlist.size > 1:
        steps = np.diff(tlist)
        report.update(
            tlist_range=(float(tlist[0]), float(tlist[-1])),
            dt_min=float(steps.min()),
            dt_max=float(steps.max()),
        )
    else:
        report["tlist_range"] = None

    if problem.rho0 is not None:
        report["rho0"] = _state_summary(problem.rho0, problem.D, opt)

    for kind, terms in (("H", problem.h_terms), ("C", problem.c_terms), ("E", problem.e_terms)):
        report[kind] = _term_section(kind, terms, problem, tlist, opt)

    report["baths"] = [
        {
            "label": b.label,
            "op_fro_norm": float(np.linalg.norm(b.op)),
            "n_exp": len(b.exponents.vk_real) + len(b.exponents.vk_imag),
        }
        for b in problem.baths
    ]

    flagged = [t["label"] for t in report["H"]["terms"] if t.get("op_is_hermitian") is False]
    logger.debug(
        "Audit dims=%s: %d H, %d C, %d E terms, %d baths; non-Hermitian H ops: %s",
        dims, report["H"]["count"], report["C"]["count"], report["E"]["count"],
        len(report["baths"]), flagged or "none",
    )
    return report
