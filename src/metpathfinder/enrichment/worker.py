"""
Asynchronous boundary around the pathway-level group tests.

The global test and global ANCOVA can be expensive, so a QEA run is split
into three steps:

    1. prepare_qea()   -> QeaSubmission (context + GroupTestRequest)
    2. run_group_test(request) -> GroupTestResponse   (anywhere, any time)
    3. finish_qea(submission, response) -> completed AnalysisContext

A request is a self-contained, typed value: abundance matrix, labels,
ordered per-pathway compound subsets, set sizes and impact scores. It can
be handed to an executor (``GroupTestWorker``) or written to a JSON
handoff file and picked up by another process. ``run_group_test`` never
raises for statistical failures: it returns a response whose ``error``
is set, and ``finish_qea`` turns that into a ComputationError.

Examples:
    >>> submission = prepare_qea(data, labels, library)
    >>> with GroupTestWorker(max_workers=2) as worker:
    ...     future = worker.submit(submission.request)
    ...     context = finish_qea(submission, future.result())
    >>>
    >>> # Durable handoff
    >>> submission.request.save(Path("ga_in.json"))
    >>> response = run_group_test(GroupTestRequest.load(Path("ga_in.json")))
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from metpathfinder.enrichment.types import QeaMethod
from metpathfinder.errors import ComputationError
from metpathfinder.stats.globalancova import global_ancova
from metpathfinder.stats.globaltest import global_test
from metpathfinder.utils.fileio import atomic_write_json

logger = logging.getLogger(__name__)

__all__ = [
    'GroupTestRequest',
    'GroupTestResponse',
    'run_group_test',
    'GroupTestWorker',
]


@dataclass(frozen=True)
class GroupTestRequest:
    """
    Everything a group test needs, in a fixed pathway order.

    Attributes:
        method: Global test or global ANCOVA
        data: Abundance table (samples x canonical compound IDs)
        labels: Class label per sample (strings for groups, floats for numeric)
        label_categories: Group order for categorical labels; None for numeric
        subsets: Ordered (pathway ID, hit compounds) pairs
        set_num: Pathway sizes aligned with ``subsets``
        impact: Impact scores aligned with ``subsets``
        n_permutations: Permutation draws (global test, > 2 groups)
        seed: Permutation seed
    """

    method: QeaMethod
    data: pd.DataFrame
    labels: tuple
    label_categories: Optional[tuple[str, ...]]
    subsets: tuple[tuple[str, tuple[str, ...]], ...]
    set_num: tuple[int, ...]
    impact: tuple[float, ...]
    n_permutations: int = 10000
    seed: Optional[int] = 0

    def __post_init__(self):
        object.__setattr__(self, 'method', QeaMethod(self.method))
        subsets = tuple((str(pid), tuple(cmpds)) for pid, cmpds in self.subsets)
        object.__setattr__(self, 'subsets', subsets)
        if not (len(subsets) == len(self.set_num) == len(self.impact)):
            raise ValueError("subsets, set_num and impact must have equal length")
        if len(self.labels) != self.data.shape[0]:
            raise ValueError(
                f"Got {len(self.labels)} class labels for {self.data.shape[0]} samples"
            )

    @property
    def pathway_ids(self) -> tuple[str, ...]:
        return tuple(pid for pid, _ in self.subsets)

    def label_vector(self) -> pd.Categorical | np.ndarray:
        """Labels in the form the statistics expect."""
        if self.label_categories is None:
            return np.asarray(self.labels, dtype=np.float64)
        return pd.Categorical(list(self.labels), categories=list(self.label_categories))

    def to_dict(self) -> dict[str, Any]:
        return {
            'method': self.method.value,
            'data': {
                'index': [str(i) for i in self.data.index],
                'columns': [str(c) for c in self.data.columns],
                'values': self.data.to_numpy(dtype=np.float64).tolist(),
            },
            'labels': list(self.labels),
            'label_categories': None if self.label_categories is None else list(self.label_categories),
            'subsets': [[pid, list(cmpds)] for pid, cmpds in self.subsets],
            'set_num': [int(n) for n in self.set_num],
            'impact': [float(x) for x in self.impact],
            'n_permutations': self.n_permutations,
            'seed': self.seed,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> GroupTestRequest:
        data = pd.DataFrame(
            payload['data']['values'],
            index=payload['data']['index'],
            columns=payload['data']['columns'],
            dtype=np.float64,
        )
        categories = payload.get('label_categories')
        return cls(
            method=QeaMethod(payload['method']),
            data=data,
            labels=tuple(payload['labels']),
            label_categories=None if categories is None else tuple(categories),
            subsets=tuple((pid, tuple(cmpds)) for pid, cmpds in payload['subsets']),
            set_num=tuple(int(n) for n in payload['set_num']),
            impact=tuple(float(x) for x in payload['impact']),
            n_permutations=int(payload.get('n_permutations', 10000)),
            seed=payload.get('seed'),
        )

    def save(self, path: Path) -> Path:
        """Write the request as a JSON handoff file (atomic)."""
        atomic_write_json(path, self.to_dict())
        return Path(path)

    @classmethod
    def load(cls, path: Path) -> GroupTestRequest:
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))


@dataclass(frozen=True)
class GroupTestResponse:
    """
    Outcome of a group test: per-pathway results or a failure.

    Attributes:
        pathway_ids: Pathway order of the vectors (must match the request)
        match_num: Compounds tested per pathway
        raw_p: Raw p-value per pathway
        error: Failure description; None on success
    """

    pathway_ids: tuple[str, ...]
    match_num: tuple[int, ...] = ()
    raw_p: tuple[float, ...] = ()
    error: Optional[str] = None

    def __post_init__(self):
        if self.error is None and not (len(self.pathway_ids) == len(self.match_num) == len(self.raw_p)):
            raise ValueError("pathway_ids, match_num and raw_p must have equal length")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, pathway_ids: Sequence[str], error: str) -> GroupTestResponse:
        return cls(pathway_ids=tuple(pathway_ids), error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            'pathway_ids': list(self.pathway_ids),
            'match_num': [int(n) for n in self.match_num],
            'raw_p': [float(p) for p in self.raw_p],
            'error': self.error,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> GroupTestResponse:
        return cls(
            pathway_ids=tuple(payload['pathway_ids']),
            match_num=tuple(int(n) for n in payload.get('match_num', ())),
            raw_p=tuple(float(p) for p in payload.get('raw_p', ())),
            error=payload.get('error'),
        )

    def save(self, path: Path) -> Path:
        atomic_write_json(path, self.to_dict())
        return Path(path)

    @classmethod
    def load(cls, path: Path) -> GroupTestResponse:
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))


def run_group_test(request: GroupTestRequest) -> GroupTestResponse:
    """
    Execute the group test described by ``request``.

    Returns a failed response (never raises) when the test cannot be
    computed for the pathway set.
    """
    subsets = dict(request.subsets)
    labels = request.label_vector()
    logger.info(
        f"{request.method.description}: {len(subsets)} pathways, "
        f"{request.data.shape[0]} samples, {request.data.shape[1]} compounds"
    )
    try:
        if request.method is QeaMethod.GLOBAL_TEST:
            result = global_test(
                request.data,
                labels,
                subsets,
                n_permutations=request.n_permutations,
                seed=request.seed,
            )
            match_num = result["#Cov"]
            raw_p = result["p-value"]
        else:
            result = global_ancova(request.data, labels, subsets)
            match_num = result["genes"]
            raw_p = result["p.approx"]
    except (ComputationError, ValueError, np.linalg.LinAlgError) as e:
        logger.error(f"{request.method.description} failed: {e}")
        return GroupTestResponse.failure(request.pathway_ids, f"{type(e).__name__}: {e}")

    return GroupTestResponse(
        pathway_ids=tuple(result.index),
        match_num=tuple(int(n) for n in match_num),
        raw_p=tuple(float(p) for p in raw_p),
    )


class GroupTestWorker:
    """
    Runs group-test requests on a ``concurrent.futures`` executor.

    Args:
        executor: Executor to submit to; a ThreadPoolExecutor owned by the
            worker is created when omitted
        max_workers: Size of the owned executor
    """

    def __init__(self, executor: Optional[Executor] = None, max_workers: int = 1):
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers)

    def submit(self, request: GroupTestRequest) -> Future[GroupTestResponse]:
        return self._executor.submit(run_group_test, request)

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> GroupTestWorker:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
