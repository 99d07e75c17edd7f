# bdf_driver/examples/harmonic_oscillator.py
"""Harmonic oscillator trajectory recorded step by step with TaskMode.ONE_STEP.

The driver (``python -m bdf_driver``) only reports the state at t = 10. This
example uses the same handles directly and asks the integrator for one
internal step at a time, so every accepted BDF step is recorded. It then
compares the trajectory against y = (cos t, -sin t) at two tolerance levels.

This script saves plots to disk (no interactive windows).
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from bdf_driver import (
    DenseLinearSolver,
    DenseMatrix,
    Integrator,
    StateVector,
    TaskMode,
    harmonic_oscillator_exact,
    harmonic_oscillator_rhs,
)

_OUTPUT_DIR = Path(__file__).resolve().parent / "output" / "oscillator"


def record_trajectory(
    *,
    tout: float,
    rtol: float,
    atol: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Integrate from (1, 0) at t = 0 and keep every internal step.

    Args:
        tout: Final time.
        rtol: Relative tolerance.
        atol: Absolute tolerance.

    Returns:
        (times, states) with shapes (n,) and (n, 2), including t = 0.
    """
    times = [0.0]
    states = [(1.0, 0.0)]

    with StateVector.new_serial(2) as y, DenseMatrix.new(2, 2) as a:
        y.set_values(states[0])
        with (
            Integrator.create("bdf", "newton") as integrator,
            DenseLinearSolver.new(y, a) as ls,
        ):
            integrator.init(harmonic_oscillator_rhs, 0.0, y)
            integrator.set_tolerances(rtol, atol)
            integrator.set_linear_solver(ls, a)

            t = 0.0
            while t < tout:
                t = integrator.advance(tout, y, TaskMode.ONE_STEP)
                times.append(t)
                states.append(y.copy_values())

            stats = integrator.get_stats()
            print(
                f"rtol={rtol:g}: {stats.n_steps} steps, {stats.n_rhs_evals} rhs evals, "
                f"{stats.n_lin_setups} LU factorizations"
            )

    return np.asarray(times), np.asarray(states)


def save_trajectory_plot(
    time: np.ndarray,
    states: np.ndarray,
    *,
    title: str,
    out_path: Path,
) -> None:
    """Save y1, y2 against the analytic solution, plus the pointwise error.

    Args:
        time: 1D array of step times, shape (n,).
        states: States at those times, shape (n, 2).
        title: Plot title.
        out_path: Output path for the saved figure.
    """
    t_fine = np.linspace(0.0, float(time[-1]), 1001)
    exact_fine = harmonic_oscillator_exact(t_fine)
    err = np.abs(states - harmonic_oscillator_exact(time).T).max(axis=1)

    fig, (ax_y, ax_err) = plt.subplots(2, 1, figsize=(8, 7), sharex=True)
    ax_y.plot(t_fine, exact_fine[0], color="0.6", lw=1, label="cos t")
    ax_y.plot(t_fine, exact_fine[1], color="0.6", lw=1, ls="--", label="-sin t")
    ax_y.plot(time, states[:, 0], "o", ms=3, label="y1 (BDF steps)")
    ax_y.plot(time, states[:, 1], "s", ms=3, label="y2 (BDF steps)")
    ax_y.grid(visible=True)
    ax_y.legend()
    ax_y.set_ylabel("State")
    ax_y.set_title(title)

    ax_err.semilogy(time[1:], err[1:])
    ax_err.grid(visible=True)
    ax_err.set_xlabel("Time")
    ax_err.set_ylabel("max |y - y_exact|")

    fig.tight_layout()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=150)
    plt.close(fig)


def main() -> None:
    """Record and plot the oscillator at the reference and at tight tolerances.

    Files are written to: examples/output/oscillator/
    """
    for rtol, atol in ((1e-4, 1e-8), (1e-8, 1e-10)):
        time, states = record_trajectory(tout=10.0, rtol=rtol, atol=atol)
        save_trajectory_plot(
            time,
            states,
            title=f"Harmonic oscillator, BDF/Newton (rtol={rtol:g}, atol={atol:g})",
            out_path=_OUTPUT_DIR / f"oscillator_rtol_{rtol:g}.png",
        )


if __name__ == "__main__":
    main()
