# stability_utils.py


#
# Imports
#

import pandas as pd
import plotly.express as px
from contextlib import contextmanager
from time import perf_counter

from .stability import DimRedStability


#
# Auxiliary functions for plotting and benchmarking stability assessments
#


#
# Plot the mean stable-component count against the threshold
#
def display_stability(summary, title=None):
    """
    Parameters
    ----------
    summary: (pandas.DataFrame or dict) Output of `StabilityEstimate.summary()`, or a dict
        of such summaries keyed by method name to plot several curves.
    title: (str) Figure title.

    Returns
    -------
    object: Line plot of stable components vs. correlation threshold (Plotly Express).
    """
    if isinstance(summary, pd.DataFrame):
        summary = {"": summary}

    frames = []
    for name, frame in summary.items():
        frame = frame.reset_index()
        frame["method"] = name
        frames.append(frame)
    data_df = pd.concat(frames, ignore_index=True)

    figure = px.line(data_df, x='threshold', y='mean', error_y='std',
                     color='method' if len(summary) > 1 else None,
                     labels={'threshold': 'Correlation threshold', 'mean': 'Stable components'},
                     title=title or 'Stable components vs correlation threshold')
    return figure


#
# Plot trustworthiness and continuity against neighbourhood size
#
def display_quality(quality, title=None):
    """
    Parameters
    ----------
    quality: (QualityMetric) Trustworthiness and continuity of one embedding.
    title: (str) Figure title.

    Returns
    -------
    object: Line plot of both metrics vs. neighbourhood size (Plotly Express).
    """
    data_df = quality.to_frame().reset_index().melt(id_vars='k', var_name='metric', value_name='value')
    figure = px.line(data_df, x='k', y='value', color='metric', markers=True,
                     labels={'k': 'Neighbourhood size'},
                     title=title or 'Trustworthiness and continuity')
    figure.update_yaxes(range=[0, 1.05])
    return figure


#
# Timing a given block of code
#
@contextmanager
def block_timing():
    """
    Returns
    -------
    float: elapsed runtime (in seconds) for a given block of code
    """
    t1 = t2 = perf_counter()
    yield lambda: t2 - t1
    t2 = perf_counter()


#
# Benchmark the stability of several methods on the same data
#
def run_stability_benchmark(data, methods, **kwargs):
    """
    Run a stability assessment for each method on the same data and subsets.

    Parameters
    ----------
    data: (numpy.ndarray or pandas.DataFrame) The high-dimensional data.
    methods: (sequence of str) Reduction methods to compare.
    kwargs: Keyword arguments for `DimRedStability` (shared by all methods).

    Returns
    -------
    dict: For each method a dictionary with the stability 'summary', the mean
          'quality' over subsets per neighbourhood size, and the 'timing' in seconds.
    """
    results = {}
    for method in methods:
        with block_timing() as bt:
            stab = DimRedStability(method=method, **kwargs).fit(data)
        results[method] = {
            'summary': stab.stability_curve(),
            'quality': stab.quality().groupby(level='k').mean(),
            'timing': bt(),
        }
    return results
