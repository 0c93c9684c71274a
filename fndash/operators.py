"""
Checked collection operators.

Each operator validates the function it is given (callable, arity, return
cardinality and kind) and the compatibility of that function's
annotations with the input elements before calling it on any element.
Validation failures raise subclasses of ``FnDashError``; exceptions raised
by the function itself propagate unchanged.
"""

from collections.abc import Hashable, MutableMapping, MutableSequence
from typing import Any, Callable, Dict, Iterable, List, Optional

from fndash.contracts import (
    ElementNotFoundError,
    FunctionContract,
    FunctionSignature,
    ReturnTypeError,
    TypeMismatchError,
    accepts_type,
    accepts_value,
    check_elements,
    check_output,
    check_result,
    fill_output,
    type_name,
    unpack_container,
)
from fndash.models import OperatorSettings, get_settings
from fndash.utils import instrumented

PREDICATE = FunctionContract(
    role="predicate function",
    arity=1,
    return_kind=bool
)

MAPPER = FunctionContract(
    role="mapper function",
    arity=1
)

GROUPER = FunctionContract(
    role="group function",
    arity=1,
    return_kind=Hashable
)

REDUCER = FunctionContract(
    role="reducer function",
    arity=2
)

_MISSING = object()


def call_checked(fn: Callable, signature: FunctionSignature, contract: FunctionContract,
                 settings: OperatorSettings, *args: Any) -> Any:
    """Call ``fn`` and check what it returns when strict returns are on."""
    result = fn(*args)
    if settings.strict_returns:
        check_result(signature, result, contract.role, contract.return_kind)
    return result


def _checked_elements(settings: OperatorSettings, signature: FunctionSignature,
                      contract: FunctionContract, values: List[Any], position: int = 0):
    if settings.check_element_types:
        check_elements(signature, position, values, contract.role)


@instrumented("all")
def all_(items: Iterable[Any], predicate: Callable[[Any], bool]) -> bool:
    """Return True if ``predicate`` holds for every element.

    Iteration stops at the first element the predicate rejects. An empty
    input yields True.
    """
    signature = PREDICATE.validate(predicate)
    container = unpack_container(items)
    settings = get_settings()
    _checked_elements(settings, signature, PREDICATE, container.values)

    for element in container.values:
        if not call_checked(predicate, signature, PREDICATE, settings, element):
            return False
    return True


@instrumented("any")
def any_(items: Iterable[Any], predicate: Callable[[Any], bool]) -> bool:
    """Return True if ``predicate`` holds for at least one element.

    Iteration stops at the first element the predicate accepts. An empty
    input yields False.
    """
    signature = PREDICATE.validate(predicate)
    container = unpack_container(items)
    settings = get_settings()
    _checked_elements(settings, signature, PREDICATE, container.values)

    for element in container.values:
        if call_checked(predicate, signature, PREDICATE, settings, element):
            return True
    return False


every = all_
some = any_


@instrumented("filter")
def filter_(items: Iterable[Any], predicate: Callable[[Any], bool], out: Optional[Any] = None) -> Any:
    """Keep the elements that satisfy ``predicate``.

    Sequences and other iterables produce a list, mappings produce a dict
    of the kept key/value pairs. When ``out`` is given its contents are
    replaced by the result and ``out`` is returned.
    """
    signature = PREDICATE.validate(predicate)
    container = unpack_container(items)
    if out is not None:
        expected = MutableMapping if container.is_mapping else MutableSequence
        check_output(out, expected, container.type_name)
    settings = get_settings()
    _checked_elements(settings, signature, PREDICATE, container.values)

    if container.is_mapping:
        result = {}
        for key, value in zip(container.keys, container.values):
            if call_checked(predicate, signature, PREDICATE, settings, value):
                result[key] = value
    else:
        result = []
        for element in container.values:
            if call_checked(predicate, signature, PREDICATE, settings, element):
                result.append(element)

    if out is not None:
        return fill_output(out, result)
    return result


@instrumented("find")
def find(items: Iterable[Any], predicate: Callable[[Any], bool], default: Any = _MISSING) -> Any:
    """Return the first element that satisfies ``predicate``.

    Raises ``ElementNotFoundError`` when nothing matches, unless a
    ``default`` is given.
    """
    signature = PREDICATE.validate(predicate)
    container = unpack_container(items)
    settings = get_settings()
    _checked_elements(settings, signature, PREDICATE, container.values)

    for element in container.values:
        if call_checked(predicate, signature, PREDICATE, settings, element):
            return element

    if default is _MISSING:
        raise ElementNotFoundError("element not found")
    return default


@instrumented("group_by")
def group_by(items: Iterable[Any], key_fn: Callable[[Any], Any],
             out: Optional[MutableMapping] = None) -> Dict[Any, List[Any]]:
    """Group elements by the key ``key_fn`` computes for them.

    Keys appear in the order they are first produced and each group keeps
    the input order of its elements.
    """
    signature = GROUPER.validate(key_fn)
    container = unpack_container(items)
    if out is not None:
        check_output(out, MutableMapping, container.type_name)
    settings = get_settings()
    _checked_elements(settings, signature, GROUPER, container.values)

    groups: Dict[Any, List[Any]] = {}
    for element in container.values:
        key = call_checked(key_fn, signature, GROUPER, settings, element)
        try:
            bucket = groups.setdefault(key, [])
        except TypeError as e:
            raise ReturnTypeError(
                f"{GROUPER.role} should return a hashable key and not ({type(key).__name__})"
            ) from e
        bucket.append(element)

    if out is not None:
        return fill_output(out, groups)
    return groups


@instrumented("map")
def map_(items: Iterable[Any], mapper: Callable[[Any], Any], out: Optional[MutableSequence] = None) -> List[Any]:
    """Apply ``mapper`` to every element; the result has one entry per element."""
    signature = MAPPER.validate(mapper)
    container = unpack_container(items)
    if out is not None:
        check_output(out, MutableSequence, container.type_name)
    settings = get_settings()
    _checked_elements(settings, signature, MAPPER, container.values)

    result = []
    for element in container.values:
        result.append(call_checked(mapper, signature, MAPPER, settings, element))

    if out is not None:
        return fill_output(out, result)
    return result


@instrumented("reduce")
def reduce_(items: Iterable[Any], reducer: Callable[[Any, Any], Any], initial: Any) -> Any:
    """Fold the elements into ``initial`` from left to right.

    Whatever ``reducer`` returns is the accumulator of the next step. An
    empty input returns ``initial`` unchanged.
    """
    signature = REDUCER.validate(reducer)
    container = unpack_container(items)

    accumulator_type = signature.param_type(0)
    if not accepts_value(accumulator_type, initial):
        raise TypeMismatchError(
            f"{REDUCER.role}'s first argument's type({type_name(accumulator_type)}) "
            f"has to be the type of the accumulator({type(initial).__name__})"
        )
    if not accepts_type(accumulator_type, signature.return_type):
        raise TypeMismatchError(
            f"{REDUCER.role}'s return type({type_name(signature.return_type)}) "
            f"has to be the type of the accumulator({type_name(accumulator_type)})"
        )

    settings = get_settings()
    _checked_elements(settings, signature, REDUCER, container.values, position=1)

    accumulator = initial
    for element in container.values:
        accumulator = call_checked(reducer, signature, REDUCER, settings, accumulator, element)
    return accumulator
