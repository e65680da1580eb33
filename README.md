# vecstore

vecstore stores dense float vectors on disk and scores them against a query
vector. It also provides the types that describe segment configuration,
payload values and query filters, with JSON reading and writing for them.

## Installation

```
pip install .
```

To run the tests, install the test extra and then run pytest:

```
pip install ".[test]"
pytest
```

## Modules

- `vecstore.types`: `Distance` (`COSINE`, `EUCLID`, `DOT`), `Order` and
  `distance_order`, `ScoredPoint`, and the segment configuration types
  `HnswConfig`, `Indexes`, `PayloadIndexType`, `StorageType`,
  `SegmentConfig` and `SegmentState`. Each of these has `from_json` / `to_json`.
- `vecstore.spaces`: the `Metric` interface and `DotProductMetric`,
  `CosineMetric` and `EuclidMetric`. For every metric a greater score means a
  closer vector, so Euclid scores are negated distances.
  `CosineMetric.preprocess` normalises a vector to unit length. The other
  metrics return `None` from `preprocess`.
- `vecstore.tools`: `FixedLengthPriorityQueue`, `peek_top_scores` /
  `peek_top_scores_iterable` (the `top` largest values, largest first; with
  `top == 0` every value is returned unchanged), and `metric_object(distance)`.
- `vecstore.vector_storage_base`: `ScoredPointOffset` and the abstract
  `RawScorer` and `VectorStorage` interfaces.
- `vecstore.simple_vector_storage`: `SimpleVectorStorage` keeps every vector
  in memory. It writes each change through to an SQLite file in its directory.
- `vecstore.mmap_vectors`: `MmapVectors` maps a vector matrix file for reading
  and a file of deletion flags for writing. Each file starts with a 4-byte
  header.
- `vecstore.memmap_vector_storage`: `MemmapVectorStorage` is built on
  `MmapVectors`. New vectors can only be appended in bulk with `update_from`.
  `put_vector` and `update_vector` raise `io.UnsupportedOperation`.
- `vecstore.payload`: `PayloadType`, `PayloadVariant`, `PayloadInterface`
  (reads both the bare shortcut form and the strict `{"type", "value"}` form),
  the condition types, `parse_condition` and `Filter`. `Filter.from_json`
  rejects unknown fields.
- `vecstore.errors`: `StorageError` and its subclasses `BadInputError`,
  `NotFoundError`, `ServiceError` and `BadRequestError`.
- `vecstore.helpers`: `ApiStatus`, `ApiResponse`,
  `create_search_runtime(max_search_threads)` and `process_response(action)`.
  `create_search_runtime` returns a `ThreadPoolExecutor`; passing 0 gives one
  thread fewer than the CPU count, and at least one thread.
  `process_response` runs `action` and returns an `(HTTPStatus, ApiResponse)`
  pair. A `StorageError` raised by the action is turned into its matching
  status.

Storages work with internal offsets. Offsets start at zero and have no gaps.
Deleted vectors stay stored but are skipped by `iter_ids` and by scoring.
Query vectors are passed through the storage's metric `preprocess` before
scoring. Stored vectors are kept as given.

## Example

```python
from vecstore.types import Distance
from vecstore.simple_vector_storage import SimpleVectorStorage
from vecstore.memmap_vector_storage import MemmapVectorStorage

with SimpleVectorStorage.open("/tmp/plain", 4, Distance.DOT) as plain:
    plain.put_vector([1.0, 0.0, 1.0, 1.0])
    plain.put_vector([1.0, 1.0, 1.0, 1.0])
    plain.put_vector([1.0, 0.0, 0.0, 0.0])

    best = plain.score_all([0.0, 1.0, 1.1, 1.0], 2)
    print([(p.idx, p.score) for p in best])

    with MemmapVectorStorage.open("/tmp/mapped", 4, Distance.DOT) as mapped:
        print(mapped.update_from(plain))   # range(0, 3) on a fresh directory
        mapped.delete(1)
        print(list(mapped.iter_ids()))     # [0, 2]
```

Payloads and filters can be read from JSON-like data:

```python
from vecstore.payload import Filter, PayloadInterface

flt = Filter.from_json({"must": [{"key": "city", "match": {"keyword": "Berlin"}}]})
payload = PayloadInterface.from_json(["Berlin", "Barcelona"]).to_payload_type()
```

## What it does not do

vecstore is a storage and scoring library. It has no HTTP server, no
command-line program and no collections. It has no segment objects that
combine vectors with payloads, and it does not store payloads. It builds no
vector or payload index: `HnswConfig`, `Indexes` and `PayloadIndexType` only
describe a configuration. Filters can be read and written as JSON, but nothing
in the package evaluates them against points.