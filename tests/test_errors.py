import pickle

import pytest

from vecstore.errors import (
    BadInputError,
    BadRequestError,
    NotFoundError,
    ServiceError,
    StorageError,
)

PREFIXES = {
    "bad_input": "Wrong input: ",
    "not_found": "Not found: ",
    "service": "Service internal error: ",
    "bad_request": "Bad request: ",
}
KINDS = sorted(PREFIXES)


@pytest.mark.parametrize("kind", KINDS)
def test_message_has_variant_prefix(kind):
    description = "Collection `test` doesn't exist!"
    errors = {
        "bad_input": BadInputError(description),
        "not_found": NotFoundError(description),
        "service": ServiceError(description),
        "bad_request": BadRequestError(description),
    }
    err = errors[kind]
    assert str(err) == PREFIXES[kind] + description
    assert err.description == description


@pytest.mark.parametrize("kind", KINDS)
def test_caught_as_storage_error(kind):
    errors = {
        "bad_input": BadInputError("broken"),
        "not_found": NotFoundError("broken"),
        "service": ServiceError("broken"),
        "bad_request": BadRequestError("broken"),
    }
    raised = errors[kind]
    with pytest.raises(StorageError) as info:
        raise raised
    assert info.value is raised
    assert str(info.value).startswith(PREFIXES[kind])


def test_base_error_has_no_prefix():
    assert str(StorageError("plain reason")) == "plain reason"


@pytest.mark.parametrize("kind", KINDS)
def test_pickle_round_trip(kind):
    errors = {
        "bad_input": BadInputError("lost"),
        "not_found": NotFoundError("lost"),
        "service": ServiceError("lost"),
        "bad_request": BadRequestError("lost"),
    }
    original = errors[kind]
    restored = pickle.loads(pickle.dumps(original))
    assert type(restored) is type(original)
    assert restored.description == "lost"
    assert str(restored) == PREFIXES[kind] + "lost"