import numpy as np
import matplotlib.pyplot as plt

from acceptance import poly_threshold
from vertex_scan import OFFSET, SLOPE, WINDOW

# ----------------------------------------------------------
# 1. Cluster length vs z with the compatibility window
# ----------------------------------------------------------

def plot_width_vs_z(
    hits,
    best_z: float,
    z_range=(-30.0, 30.0)
):
    """
    Scatter of cluster length (w) against z for one event, with the
    v-shaped prediction for a vertex at `best_z`.

    The prediction depends on the radius, so one curve is drawn per
    distinct layer radius (rounded to 0.1 cm); the shaded band is the
    ±WINDOW acceptance around the curve of the innermost radius.
    Returns fig, ax for testing.
    """

    fig, ax = plt.subplots(figsize=(8, 5))

    zs = np.array([h.z for h in hits], float)
    rs = np.array([h.r for h in hits], float)
    ws = np.array([h.w for h in hits], float)

    radii = sorted({round(r, 1) for r in rs if r > 0})
    sc = ax.scatter(zs, ws, s=15, c=rs, cmap="viridis", label="hits")
    if len(zs):
        fig.colorbar(sc, ax=ax, label="r (cm)")

    z_line = np.linspace(z_range[0], z_range[1], 400)
    for i, r in enumerate(radii):
        pred = SLOPE * np.abs(z_line - best_z) / r + OFFSET
        ax.plot(z_line, pred, linewidth=1.0, label=f"r = {r:.1f} cm")
        if i == 0:
            ax.fill_between(z_line, pred - WINDOW, pred + WINDOW,
                            alpha=0.15, color="grey")

    ax.axvline(best_z, linestyle="--", color="red", label=f"best z = {best_z:.2f}")
    ax.set_xlabel("z (cm)")
    ax.set_ylabel("cluster length w (pixels)")
    ax.set_title("Cluster length vs z")
    ax.grid(True)
    ax.legend(fontsize="x-small")

    plt.tight_layout()

    return fig, ax


# ----------------------------------------------------------
# 2. Scan profile
# ----------------------------------------------------------

def plot_scan_profile(
    z_grid,
    counts,
    residuals,
    best_z: float
):
    """
    Contained-hit count and summed residual against candidate z.

    Returns
    -------
    fig : matplotlib.figure.Figure
    axs : tuple of two Axes (count, residual), sharing the z axis
    """

    fig, (ax_n, ax_chi) = plt.subplots(nrows=2, ncols=1, sharex=True, figsize=(8, 6))

    ax_n.step(z_grid, counts, where="mid")
    ax_n.set_ylabel("contained hits")
    ax_n.grid(True)

    ax_chi.plot(z_grid, residuals, marker=".", linestyle="-")
    ax_chi.set_ylabel("summed residual")
    ax_chi.set_xlabel("candidate z (cm)")
    ax_chi.grid(True)

    for ax in (ax_n, ax_chi):
        ax.axvline(best_z, linestyle="--", color="red")

    fig.suptitle(f"Vertex scan (best z = {best_z:.2f} cm)")

    return fig, (ax_n, ax_chi)


# ----------------------------------------------------------
# 3. Event decisions vs multiplicity
# ----------------------------------------------------------

def plot_quality_vs_multiplicity(
    data,
    config
):
    """
    Vertex quality against pixel multiplicity for a set of events,
    accepted and rejected events in different colours, with the
    threshold curve of `config` overlaid.

    Parameters
    ----------
    data : pandas.DataFrame
        Output of event_selection.select_events (needs the columns
        nPxlHits, Quality and Accept).
    config : ClusterShapeConfig

    Returns fig, ax.
    """

    fig, ax = plt.subplots(figsize=(7, 5))

    acc = data["Accept"].astype(bool)
    ax.scatter(data.loc[acc, "nPxlHits"], data.loc[acc, "Quality"],
               s=15, color="tab:blue", label="accepted")
    ax.scatter(data.loc[~acc, "nPxlHits"], data.loc[~acc, "Quality"],
               s=15, color="tab:red", label="rejected")

    n_max = int(data["nPxlHits"].max()) if len(data) else 0
    n_line = np.arange(0, max(n_max, config.nhits_trunc) + 1)
    cut = [poly_threshold(n, config.cluster_pars, config.nhits_trunc, config.cluster_trunc)
           for n in n_line]
    ax.plot(n_line, cut, color="black", linewidth=1.2, label="threshold")

    ax.set_xlabel("pixel hits")
    ax.set_ylabel("cluster vertex quality")
    ax.set_yscale("symlog")
    ax.set_title("Cluster-shape vertex compatibility")
    ax.grid(True)
    ax.legend()

    plt.tight_layout()

    return fig, ax
