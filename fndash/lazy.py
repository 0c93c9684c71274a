from collections.abc import Mapping
from itertools import islice

from fndash import operators
from fndash.contracts import check_element, ensure_container
from fndash.models import get_settings
from fndash.operators import MAPPER, PREDICATE, call_checked


class LazyCollection:
    """
    A chainable, lazy collection over the checked operators. Steps are
    recorded and only run when you iterate, but the functions given to
    map() and filter() are validated as soon as the step is added.
    Optionally supports caching of realized results.
    """
    def __init__(self, source, ops=None, cache_enabled=False):
        ensure_container(source)
        self._source = source
        self._ops = ops or []          # sequence of ("op_name", arg)
        self._cache_enabled = cache_enabled
        self._cache = []               # realized items (post-ops)
        self._exhausted = False        # whether we've fully iterated (when caching)
        self._live = None              # pipeline iterator feeding the cache

    # --------- chainable operators (lazy) ----------
    def map(self, fn):
        return self._with_op(("map", (fn, MAPPER.validate(fn))))

    def filter(self, pred):
        return self._with_op(("filter", (pred, PREDICATE.validate(pred))))

    def skip(self, n):
        return self._with_op(("skip", max(int(n), 0)))

    def take(self, n):
        return self._with_op(("take", max(int(n), 0)))

    def batch(self, size):
        size = int(size)
        if size < 1:
            raise ValueError("Batch size must be >= 1")
        return self._with_op(("batch", size))

    def cache(self, enabled=True):
        return LazyCollection(self._source, list(self._ops), enabled)

    # --------- forcing evaluation ----------
    def to_list(self):
        return list(self)

    def count(self):
        """Return the count of elements"""
        count = 0
        for _ in self:
            count += 1
        return count

    def first(self, default=None):
        """Return the first element, or default if empty"""
        for item in self:
            return item
        return default

    def all(self, pred):
        return operators.all_(self, pred)

    def any(self, pred):
        return operators.any_(self, pred)

    def find(self, pred, default=None):
        """Return the first element that satisfies the predicate, or default"""
        return operators.find(self, pred, default)

    def group_by(self, key_fn):
        return operators.group_by(self, key_fn)

    def reduce(self, fn, initial):
        return operators.reduce_(self, fn, initial)

    # --------- iterator protocol ----------
    def __iter__(self):
        if not self._cache_enabled:
            yield from self._pipeline()
            return

        # Replay realized items, then keep pulling from the one live pipeline
        index = 0
        while True:
            if index < len(self._cache):
                yield self._cache[index]
                index += 1
                continue
            if self._exhausted:
                return
            if self._live is None:
                self._live = self._pipeline()
            try:
                item = next(self._live)
            except StopIteration:
                self._exhausted = True
                self._live = None
                return
            self._cache.append(item)

    # --------- helpers ----------
    def _pipeline(self):
        source = self._source.values() if isinstance(self._source, Mapping) else self._source
        it = iter(source)
        settings = get_settings()
        for op, arg in self._ops:
            if op == "map":
                it = self._run(it, arg, settings)
            elif op == "filter":
                it = self._keep(it, arg, settings)
            elif op == "skip":
                it = islice(it, arg, None)
            elif op == "take":
                it = islice(it, arg)
            elif op == "batch":
                it = self._batch(it, arg)
            else:
                raise ValueError(f"Unknown op: {op}")
        return it

    @staticmethod
    def _run(gen, arg, settings):
        fn, signature = arg
        for index, x in enumerate(gen):
            if settings.check_element_types:
                check_element(signature, 0, x, MAPPER.role, index)
            yield call_checked(fn, signature, MAPPER, settings, x)

    @staticmethod
    def _keep(gen, arg, settings):
        pred, signature = arg
        for index, x in enumerate(gen):
            if settings.check_element_types:
                check_element(signature, 0, x, PREDICATE.role, index)
            if call_checked(pred, signature, PREDICATE, settings, x):
                yield x

    @staticmethod
    def _batch(gen, size):
        bucket = []
        for x in gen:
            bucket.append(x)
            if len(bucket) == size:
                yield tuple(bucket)
                bucket = []
        if bucket:
            yield tuple(bucket)

    def _with_op(self, op_tuple):
        return LazyCollection(self._source, self._ops + [op_tuple], self._cache_enabled)
