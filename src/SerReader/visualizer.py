# -*- coding: utf-8 -*-
"""
Created on Fri Oct  9 15:02:11 2026

@author: p-sik

Quick-look plots of SER slices and stacks.
"""
import os
import matplotlib.pyplot as plt
import numpy as np


def _extent(s):
    # calibrated (left, right, bottom, top) for imshow with origin="upper"
    w = s.width * s.pixel_width
    h = s.height * s.pixel_height
    return (0.0, w, h, 0.0)


def show_slice(stack_slice,
               title=None,
               cmap="gray",
               percentile=(1, 99),
               calibrated=True,
               save=False,
               filename=None,
               output_dir=None,
               show=True):
    """
    Display one slice of a SER stack.

    Parameters
    ----------
    stack_slice : SerReader.stack.StackSlice
        Slice with pixel data.
    title : str or None
        Plot title. Defaults to "slice <index> | <timestamp>".
    cmap : str
        Colormap to use.
    percentile : tuple[int,int] or None
        Percentile scaling for display contrast.
    calibrated : bool
        If True, axes are in the calibrated unit of the slice.
    save : bool
        If True, save the figure.
    filename : str
        Filename to save as (e.g. "slice_1.png").
    output_dir : str
        Directory where to save the image.
    show : bool
        If True, display the figure.

    Returns
    -------
    matplotlib.figure.Figure
    """
    img = stack_slice.pixels
    if img is None:
        raise ValueError("Slice has no pixel data (load_data=False).")

    fig, ax = plt.subplots(figsize=(6, 6))

    kw = {"cmap": cmap, "origin": "upper"}
    if percentile is not None:
        kw["vmin"], kw["vmax"] = np.percentile(img, percentile)
    if calibrated:
        kw["extent"] = _extent(stack_slice)
        ax.set_xlabel(f"x [{stack_slice.unit}]")
        ax.set_ylabel(f"y [{stack_slice.unit}]")
    else:
        ax.axis("off")

    ax.imshow(img, **kw)
    ax.set_title(title or
                 f"slice {stack_slice.index} | {stack_slice.timestamp}")
    fig.tight_layout()

    if save:
        if filename is None:
            raise ValueError(
                "If 'save' is True, you must provide a filename.")
        if output_dir is None:
            output_dir = os.getcwd()
        os.makedirs(output_dir, exist_ok=True)
        path = os.path.join(output_dir, filename)
        fig.savefig(path)
        print(f"[INFO] Saved: {path}")

    if show:
        plt.show()

    return fig


def show_stack_overview(result, num_slices=10, rows=2, cols=5, cmap="gray",
                        percentile=(1, 99), show=True):
    """
    Display evenly spaced slices of a stack in a grid.

    Parameters
    ----------
    result : SerReader.stack.StackResult
        Stack read with pixel data.
    num_slices : int
        Number of slices to display (capped by the grid and stack size).
    rows, cols : int
        The dimensions of the subplot grid.

    Returns
    -------
    matplotlib.figure.Figure
    """
    n = len(result)
    if n == 0:
        raise ValueError("Stack is empty.")
    num_slices = min(num_slices, rows * cols, n)

    picks = np.unique(np.linspace(0, n - 1, num_slices).round().astype(int))

    fig, axes = plt.subplots(rows, cols, figsize=(cols * 3, rows * 3))
    axes = np.asarray(axes).ravel()

    for ax, k in zip(axes, picks):
        s = result[int(k)]
        img = s.pixels
        if img is None:
            raise ValueError("Stack was read without pixel data "
                             "(load_data=False).")
        if percentile is not None:
            vmin, vmax = np.percentile(img, percentile)
            ax.imshow(img, cmap=cmap, origin="upper", vmin=vmin, vmax=vmax)
        else:
            ax.imshow(img, cmap=cmap, origin="upper")
        ax.set_title(f"Slice {s.index}")
        ax.axis("off")

    # Hide any unused subplots
    for j in range(len(picks), len(axes)):
        axes[j].axis("off")

    fig.tight_layout()
    if show:
        plt.show()

    return fig
