"""Runtime signature contracts for the functions handed to the operators.

Every operator describes the callable it receives (arity, annotations,
return annotation) and checks it against a ``FunctionContract`` before a
single element is visited. Annotations are the only type information a
Python callable carries, so compatibility between a function and the
elements of a container is decided by ``accepts_value`` at runtime and by
``accepts_type`` between two annotations.
"""

import inspect
import logging
import types
import typing
from collections.abc import Iterable, Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union, get_args, get_origin

logger = logging.getLogger("fndash.contracts")

_EMPTY = inspect.Parameter.empty
_NONE_TYPE = type(None)
_UNION_ORIGINS = (Union, types.UnionType)
_POSITIONAL_KINDS = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)

# int is acceptable where float is expected (and int/float where complex is)
_NUMERIC_PROMOTIONS: Dict[type, tuple] = {
    float: (int, float),
    complex: (int, float, complex),
}


class FnDashError(Exception):
    """Base class for every error raised by the operators."""
    pass


class FunctionShapeError(FnDashError, TypeError):
    """Raised when a function has the wrong arity, return cardinality or return kind."""
    pass


class TypeMismatchError(FnDashError, TypeError):
    """Raised when annotations are incompatible with the values they receive."""
    pass


class ReturnTypeError(TypeMismatchError):
    """Raised when a function returns a value its contract does not allow."""
    pass


class OutputError(FnDashError, TypeError):
    """Raised when an output container cannot be set."""
    pass


class UnsupportedInputError(FnDashError, TypeError):
    """Raised when the input is not a supported container."""
    pass


class ElementNotFoundError(FnDashError, LookupError):
    """Raised by ``find`` when no element matches and no default is given."""
    pass


class ConfigurationError(FnDashError, ValueError):
    """Raised when FNDASH_* environment variables hold invalid settings."""
    pass


@dataclass
class FunctionSignature:
    """Positional shape and annotations of a callable."""
    name: str
    known: bool = True
    param_types: List[Any] = field(default_factory=list)
    required: int = 0
    variadic: bool = False
    variadic_type: Any = Any
    required_keywords: List[str] = field(default_factory=list)
    return_type: Any = Any

    @property
    def max_arity(self) -> Optional[int]:
        return None if self.variadic else len(self.param_types)

    @property
    def return_count(self) -> int:
        if self.return_type is _NONE_TYPE or self.return_type is typing.NoReturn:
            return 0
        return 1

    def accepts_arity(self, count: int) -> bool:
        if not self.known:
            return True
        if self.required_keywords:
            return False
        if count < self.required:
            return False
        return self.variadic or count <= len(self.param_types)

    def param_type(self, position: int) -> Any:
        if position < len(self.param_types):
            return self.param_types[position]
        if self.variadic:
            return self.variadic_type
        return Any


@dataclass
class FunctionContract:
    """Requirement descriptor for the function an operator is given."""
    role: str
    arity: int
    return_kind: Optional[type] = None

    def validate(self, fn: Any) -> FunctionSignature:
        """Check ``fn`` against this contract and return its signature."""
        signature = describe(fn, self.role)
        if not signature.known:
            return signature

        if signature.required_keywords:
            raise FunctionShapeError(
                f"{self.role} cannot require keyword-only arguments "
                f"({', '.join(signature.required_keywords)})"
            )

        if not signature.accepts_arity(self.arity):
            raise FunctionShapeError(self._arity_message(signature))

        if signature.return_count != 1:
            raise FunctionShapeError(
                f"{self.role} should return only one return value and not "
                f"{signature.return_count} return value(s)"
            )

        if self.return_kind is not None and not accepts_type(self.return_kind, signature.return_type):
            raise FunctionShapeError(
                f"{self.role} should return a ({type_name(self.return_kind)}) "
                f"and not a ({type_name(signature.return_type)})"
            )

        return signature

    def _arity_message(self, signature: FunctionSignature) -> str:
        if self.arity == 1:
            return f"{self.role} has to take only one argument"
        shown = signature.required if signature.required > self.arity else signature.max_arity
        return f"{self.role} has to take exactly {self.arity} arguments and not {shown} argument(s)"


@dataclass
class Container:
    """Materialized input: its elements and, for mappings, its keys."""
    values: List[Any]
    keys: Optional[List[Any]] = None
    type_name: str = "list"

    @property
    def is_mapping(self) -> bool:
        return self.keys is not None


def type_name(annotation: Any) -> str:
    """Readable name of a class or annotation for error messages."""
    if annotation is Any:
        return "Any"
    if annotation is _NONE_TYPE or annotation is None:
        return "None"
    if isinstance(annotation, type) and not get_args(annotation):
        return annotation.__name__
    return repr(annotation).replace("typing.", "")


def _signature(fn: Any) -> inspect.Signature:
    try:
        return inspect.signature(fn, eval_str=True)
    except Exception as e:
        # Unresolvable string annotations stay strings and accept anything.
        # Callables without a signature raise again below.
        logger.debug(f"Could not resolve annotations of {fn!r}: {e}")
        return inspect.signature(fn)


def describe(fn: Any, role: str = "function") -> FunctionSignature:
    """Build the ``FunctionSignature`` of ``fn``.

    Raises ``FunctionShapeError`` if ``fn`` is not callable. Builtins whose
    signature cannot be introspected are described with ``known=False``
    and pass every shape check.
    """
    if not callable(fn):
        raise FunctionShapeError(f"{role} has to be a function and not ({type(fn).__name__})")

    name = getattr(fn, "__qualname__", None) or type(fn).__name__
    try:
        sig = _signature(fn)
    except (TypeError, ValueError) as e:
        logger.debug(f"No signature available for {name}, skipping shape checks: {e}")
        return FunctionSignature(name=name, known=False)

    signature = FunctionSignature(name=name)
    for param in sig.parameters.values():
        annotation = Any if param.annotation is _EMPTY else param.annotation
        if param.kind in _POSITIONAL_KINDS:
            signature.param_types.append(annotation)
            if param.default is _EMPTY:
                signature.required += 1
        elif param.kind == inspect.Parameter.VAR_POSITIONAL:
            signature.variadic = True
            signature.variadic_type = annotation
        elif param.kind == inspect.Parameter.KEYWORD_ONLY and param.default is _EMPTY:
            signature.required_keywords.append(param.name)

    return_type = sig.return_annotation
    if return_type is _EMPTY:
        return_type = Any
    elif return_type is None:
        return_type = _NONE_TYPE
    signature.return_type = return_type
    return signature


def _is_unconstrained(annotation: Any) -> bool:
    return (
        annotation is Any
        or annotation is object
        or annotation is _EMPTY
        or isinstance(annotation, (str, typing.ForwardRef))
    )


def _unwrap(annotation: Any) -> Any:
    """Strip ``Annotated`` and ``NewType`` wrappers; map ``None`` to ``NoneType``."""
    while True:
        if annotation is None:
            return _NONE_TYPE
        if get_origin(annotation) is typing.Annotated:
            annotation = get_args(annotation)[0]
            continue
        supertype = getattr(annotation, "__supertype__", None)
        if supertype is not None:
            annotation = supertype
            continue
        return annotation


def accepts_value(annotation: Any, value: Any) -> bool:
    """Whether ``value`` may be passed where ``annotation`` is declared.

    Annotations that cannot be decided at runtime (unresolved forward
    references, non runtime-checkable protocols) accept every value.
    """
    if _is_unconstrained(annotation):
        return True
    annotation = _unwrap(annotation)

    if annotation is _NONE_TYPE:
        return value is None

    if isinstance(annotation, typing.TypeVar):
        if annotation.__bound__ is not None:
            return accepts_value(annotation.__bound__, value)
        if annotation.__constraints__:
            return any(accepts_value(c, value) for c in annotation.__constraints__)
        return True

    origin = get_origin(annotation)
    if origin in _UNION_ORIGINS:
        return any(accepts_value(arg, value) for arg in get_args(annotation))
    if origin is Literal:
        return value in get_args(annotation)
    if origin is type:
        args = get_args(annotation)
        if not isinstance(value, type):
            return False
        if not args or not isinstance(args[0], type):
            return True
        return issubclass(value, args[0])
    if origin is not None:
        annotation = origin

    if isinstance(annotation, type):
        if annotation in _NUMERIC_PROMOTIONS:
            return isinstance(value, _NUMERIC_PROMOTIONS[annotation])
        try:
            return isinstance(value, annotation)
        except TypeError:
            return True
    return True


def accepts_type(expected: Any, candidate: Any) -> bool:
    """Whether every value of annotation ``candidate`` is accepted by ``expected``."""
    if _is_unconstrained(expected) or _is_unconstrained(candidate):
        return True
    expected = _unwrap(expected)
    candidate = _unwrap(candidate)

    candidate_origin = get_origin(candidate)
    if candidate_origin in _UNION_ORIGINS:
        return all(accepts_type(expected, arg) for arg in get_args(candidate))
    if candidate_origin is Literal:
        return all(accepts_value(expected, arg) for arg in get_args(candidate))
    if isinstance(candidate, typing.TypeVar):
        if candidate.__bound__ is not None:
            return accepts_type(expected, candidate.__bound__)
        if candidate.__constraints__:
            return all(accepts_type(expected, c) for c in candidate.__constraints__)
        return True

    expected_origin = get_origin(expected)
    if expected_origin in _UNION_ORIGINS:
        return any(accepts_type(arg, candidate) for arg in get_args(expected))
    if expected_origin is Literal:
        return False
    if isinstance(expected, typing.TypeVar):
        if expected.__bound__ is not None:
            return accepts_type(expected.__bound__, candidate)
        if expected.__constraints__:
            return any(accepts_type(c, candidate) for c in expected.__constraints__)
        return True

    expected_class = expected_origin or expected
    candidate_class = candidate_origin or candidate
    if isinstance(expected_class, type) and isinstance(candidate_class, type):
        if expected_class in _NUMERIC_PROMOTIONS:
            return issubclass(candidate_class, _NUMERIC_PROMOTIONS[expected_class])
        try:
            return issubclass(candidate_class, expected_class)
        except TypeError:
            return True
    return True


def ensure_container(items: Any) -> None:
    """Reject inputs that are not iterable collections of elements."""
    if isinstance(items, (str, bytes, bytearray)) or not isinstance(items, Iterable):
        raise UnsupportedInputError(f"not implemented for ({type(items).__name__})")


def unpack_container(items: Any) -> Container:
    """Materialize ``items`` once; mappings contribute their values."""
    ensure_container(items)
    if isinstance(items, Mapping):
        return Container(values=list(items.values()), keys=list(items.keys()), type_name=type(items).__name__)
    return Container(values=list(items), type_name=type(items).__name__)


def check_element(signature: FunctionSignature, position: int, element: Any, role: str, index: int = 0) -> None:
    annotation = signature.param_type(position)
    if not accepts_value(annotation, element):
        raise TypeMismatchError(
            f"{role}'s argument ({type_name(annotation)}) does not accept "
            f"element {index} of type ({type(element).__name__})"
        )


def check_elements(signature: FunctionSignature, position: int, elements: List[Any], role: str) -> None:
    """Check every element against the annotation of parameter ``position``."""
    if _is_unconstrained(signature.param_type(position)):
        return
    for index, element in enumerate(elements):
        check_element(signature, position, element, role, index)


def check_result(signature: FunctionSignature, value: Any, role: str,
                 return_kind: Optional[type] = None) -> None:
    """Check a value returned by a function against its contract and annotation."""
    if return_kind is bool and not isinstance(value, bool):
        raise ReturnTypeError(f"{role} should return a (bool) and not a ({type(value).__name__})")
    if not accepts_value(signature.return_type, value):
        raise ReturnTypeError(
            f"{role} returned ({type(value).__name__}) but is annotated "
            f"to return ({type_name(signature.return_type)})"
        )


_OUTPUT_NOUNS = {MutableSequence: "sequence", MutableMapping: "mapping"}
_READONLY_KINDS = {MutableSequence: Sequence, MutableMapping: Mapping}


def check_output(out: Any, expected: type, input_type: str) -> None:
    """Check that ``out`` is a settable container of kind ``expected``."""
    if isinstance(out, expected):
        return
    noun = _OUTPUT_NOUNS[expected]
    if isinstance(out, _READONLY_KINDS[expected]):
        raise OutputError(f"cannot set out ({type(out).__name__}). Pass a mutable {noun} to set output")
    raise OutputError(
        f"output should be a mutable {noun} for input of type {input_type} "
        f"and not ({type(out).__name__})"
    )


def fill_output(out: Any, result: Any) -> Any:
    """Replace the contents of a checked output container with ``result``."""
    out.clear()
    if isinstance(out, MutableMapping):
        out.update(result)
    else:
        out.extend(result)
    return out
