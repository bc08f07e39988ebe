"""
California Languages Explorer — Classification
Bin edges for the four choropleth classification methods.
"""
import logging
from enum import Enum

import mapclassify
import numpy as np
from scipy.cluster.hierarchy import fcluster, linkage
from sklearn.cluster import KMeans

logger = logging.getLogger(__name__)


class ClassificationMethod(str, Enum):
    EQUAL = "equal"      # equal-width intervals
    KMEANS = "kmeans"    # k-means centroid clustering
    HCLUST = "hclust"    # hierarchical clustering, complete linkage
    JENKS = "jenks"      # Fisher-Jenks natural breaks


def parse_method(method) -> ClassificationMethod:
    try:
        return ClassificationMethod(method)
    except ValueError:
        choices = ", ".join(m.value for m in ClassificationMethod)
        raise ValueError(f"Unknown classification method {method!r} (expected one of: {choices})")


def _cluster_upper_bounds(values: np.ndarray, labels: np.ndarray) -> list[float]:
    return sorted({float(values[labels == label].max()) for label in np.unique(labels)})


def classify_breaks(values, method="jenks", k: int = 5) -> list[float]:
    """
    Upper bound of each class for `values`, ascending; the last bound is the
    maximum. Fewer than k classes come back when there are fewer than k
    distinct values.
    """
    method = parse_method(method)
    vals = np.asarray(values, dtype=float)
    vals = vals[~np.isnan(vals)]
    if vals.size == 0:
        return []

    k = min(k, len(np.unique(vals)))
    if k < 2:
        return [float(vals.max())]

    if method is ClassificationMethod.EQUAL:
        bins = mapclassify.EqualInterval(vals, k=k).bins
    elif method is ClassificationMethod.JENKS:
        bins = mapclassify.FisherJenks(vals, k=k).bins
    elif method is ClassificationMethod.KMEANS:
        km = KMeans(n_clusters=k, n_init=10, random_state=0).fit(vals.reshape(-1, 1))
        bins = _cluster_upper_bounds(vals, km.labels_)
    else:
        tree = linkage(vals.reshape(-1, 1), method="complete")
        bins = _cluster_upper_bounds(vals, fcluster(tree, t=k, criterion="maxclust"))

    return sorted({float(b) for b in bins})


def class_index(values, method="jenks", k: int = 5) -> list[float]:
    """
    Threshold list for a branca StepColormap: [min, edge_1, ..., max].

    StepColormap starts a new step at each threshold, so a class's upper
    bound cannot be used as an edge. Each edge sits halfway between one
    class's upper bound and the next value above it (capped at the next
    bound, for empty equal-width classes). One threshold pair per class.
    """
    bins = classify_breaks(values, method, k)
    if not bins:
        return []
    vals = np.asarray(values, dtype=float)
    vals = vals[~np.isnan(vals)]
    vmin = float(vals.min())
    if len(bins) == 1:
        # Single-valued input; widen so the colormap has a range
        return [vmin - 0.5, vmin + 0.5]

    edges = []
    for bound, next_bound in zip(bins[:-1], bins[1:]):
        next_value = min(float(vals[vals > bound].min()), next_bound)
        edges.append((bound + next_value) / 2)
    return [vmin] + edges + [bins[-1]]
