"""
Tests for function signature descriptors and annotation compatibility.
"""

import functools
import logging
from collections.abc import Hashable, MutableMapping, MutableSequence
from typing import Any, Callable, List, Literal, NewType, Optional, Tuple, TypeVar, Union

import pytest

from fndash.contracts import (
    FunctionContract,
    FunctionShapeError,
    OutputError,
    ReturnTypeError,
    TypeMismatchError,
    UnsupportedInputError,
    accepts_type,
    accepts_value,
    check_elements,
    check_output,
    check_result,
    describe,
    type_name,
    unpack_container,
)
from fndash.operators import map_

UserId = NewType("UserId", int)
Number = TypeVar("Number", int, float)
Bounded = TypeVar("Bounded", bound=str)


def square(x: int) -> int:
    return x * x


def is_even(x: int) -> bool:
    return x % 2 == 0


def add(acc: int, x: int, scale: int = 1) -> int:
    return acc + x * scale


def log_only(x) -> None:
    pass


def needs_keyword(x, *, unit):
    return x


def variadic(*values: str) -> str:
    return "".join(values)


def missing_attribute(x: "logging.NotAThing") -> "int":
    return x


class Person:
    def __init__(self, name: str, age: int):
        self.name = name
        self.age = age


class Student(Person):
    pass


class Greeter:
    def greet(self, other: str) -> str:
        return f"hello {other}"


class Opaque:
    """Callable whose signature cannot be introspected"""
    __signature__ = 42

    def __call__(self, *args):
        return True


class TestDescribe:
    """Test building signature descriptors"""

    def test_annotated_function(self):
        """Test parameter and return annotations are captured"""
        signature = describe(square)

        assert signature.known
        assert signature.param_types == [int]
        assert signature.required == 1
        assert signature.max_arity == 1
        assert signature.return_type is int
        assert signature.return_count == 1

    def test_unannotated_lambda(self):
        """Test missing annotations become Any"""
        signature = describe(lambda a, b: a)

        assert signature.param_types == [Any, Any]
        assert signature.return_type is Any

    def test_defaults_extend_max_arity(self):
        """Test optional positional parameters"""
        signature = describe(add)

        assert signature.required == 2
        assert signature.max_arity == 3
        assert signature.accepts_arity(2)
        assert signature.accepts_arity(3)
        assert not signature.accepts_arity(1)

    def test_variadic(self):
        """Test *args accepts any count and provides the element annotation"""
        signature = describe(variadic)

        assert signature.variadic
        assert signature.max_arity is None
        assert signature.accepts_arity(5)
        assert signature.param_type(3) is str

    def test_none_return_counts_as_zero(self):
        """Test a function annotated to return None has no return value"""
        assert describe(log_only).return_count == 0

    def test_required_keyword_only(self):
        """Test required keyword-only parameters are recorded"""
        signature = describe(needs_keyword)

        assert signature.required_keywords == ["unit"]
        assert not signature.accepts_arity(1)

    def test_partial_and_bound_method(self):
        """Test partials and bound methods hide the bound parameters"""
        assert describe(functools.partial(add, 0)).required == 1
        assert describe(Greeter().greet).required == 1

    def test_callable_without_signature(self):
        """Test callables that cannot be introspected are described as unknown"""
        signature = describe(Opaque())

        assert not signature.known
        assert signature.accepts_arity(7)
        assert signature.param_type(0) is Any

    def test_unresolvable_annotation_kept_as_string(self):
        """Test annotations naming a missing attribute accept anything"""
        signature = describe(missing_attribute)

        assert signature.known
        assert signature.param_types == ["logging.NotAThing"]
        assert accepts_value(signature.param_type(0), 1)
        assert map_([1, 2], missing_attribute) == [1, 2]

    def test_not_callable(self):
        """Test non-callables are rejected"""
        with pytest.raises(FunctionShapeError, match=r"mapper function has to be a function and not \(int\)"):
            describe(7, "mapper function")


class TestFunctionContract:
    """Test contract validation of function shapes"""

    def setup_method(self):
        self.predicate = FunctionContract(role="predicate function", arity=1, return_kind=bool)
        self.reducer = FunctionContract(role="reducer function", arity=2)

    def test_valid_predicate(self):
        """Test a well-formed predicate passes"""
        assert self.predicate.validate(is_even).name == "is_even"

    def test_wrong_arity_single(self):
        """Test predicates must take one argument"""
        with pytest.raises(FunctionShapeError, match="predicate function has to take only one argument"):
            self.predicate.validate(lambda a, b: True)

        with pytest.raises(FunctionShapeError, match="predicate function has to take only one argument"):
            self.predicate.validate(lambda: True)

    def test_wrong_arity_reducer(self):
        """Test reducers must take exactly two arguments"""
        with pytest.raises(FunctionShapeError, match=r"exactly 2 arguments and not 0 argument\(s\)"):
            self.reducer.validate(lambda: 0)

        with pytest.raises(FunctionShapeError, match=r"exactly 2 arguments and not 1 argument\(s\)"):
            self.reducer.validate(lambda a: 0)

        with pytest.raises(FunctionShapeError, match=r"exactly 2 arguments and not 3 argument\(s\)"):
            self.reducer.validate(lambda a, b, c: 0)

    def test_no_return_value(self):
        """Test functions annotated to return None are rejected"""
        with pytest.raises(FunctionShapeError, match=r"should return only one return value and not 0"):
            self.predicate.validate(log_only)

    def test_wrong_return_kind(self):
        """Test predicates must be annotated to return bool"""
        with pytest.raises(FunctionShapeError, match=r"should return a \(bool\) and not a \(int\)"):
            self.predicate.validate(square)

    def test_keyword_only_rejected(self):
        """Test required keyword-only arguments cannot be satisfied"""
        with pytest.raises(FunctionShapeError, match=r"keyword-only arguments \(unit\)"):
            self.predicate.validate(needs_keyword)

    def test_hashable_return_kind(self):
        """Test a Hashable return kind rejects unhashable annotations"""
        grouper = FunctionContract(role="group function", arity=1, return_kind=Hashable)

        def to_list(x) -> List[int]:
            return [x]

        def to_key(x) -> Tuple[int, str]:
            return (x, "k")

        with pytest.raises(FunctionShapeError, match=r"group function should return a \(Hashable\)"):
            grouper.validate(to_list)
        assert grouper.validate(to_key).return_type == Tuple[int, str]


class TestAcceptsValue:
    """Test runtime annotation checks"""

    def test_plain_classes(self):
        assert accepts_value(int, 3)
        assert not accepts_value(int, "3")
        assert accepts_value(Person, Student("a", 1))
        assert not accepts_value(Student, Person("a", 1))

    def test_numeric_promotion(self):
        """Test ints are accepted where floats are declared"""
        assert accepts_value(float, 1)
        assert accepts_value(complex, 1.5)
        assert not accepts_value(int, 1.5)

    def test_unions_and_optional(self):
        assert accepts_value(Optional[int], None)
        assert accepts_value(Union[int, str], "x")
        assert accepts_value(int | str, 2)
        assert not accepts_value(Optional[int], 1.5)

    def test_generics_checked_by_origin(self):
        assert accepts_value(List[int], [1, 2])
        assert accepts_value(list[str], [])
        assert not accepts_value(List[int], (1, 2))
        assert accepts_value(Callable[[int], int], square)

    def test_literal_newtype_typevar(self):
        assert accepts_value(Literal["a", "b"], "a")
        assert not accepts_value(Literal["a", "b"], "c")
        assert accepts_value(UserId, 5)
        assert accepts_value(Number, 2.5)
        assert not accepts_value(Number, "2")
        assert accepts_value(Bounded, "s")
        assert not accepts_value(Bounded, 1)

    def test_type_of(self):
        assert accepts_value(type[Person], Student)
        assert not accepts_value(type[Student], Person)
        assert not accepts_value(type[Person], Person("a", 1))

    def test_undecidable_annotations_accept(self):
        assert accepts_value(Any, object())
        assert accepts_value("NotDefinedAnywhere", 1)


class TestAcceptsType:
    """Test static annotation compatibility"""

    def test_subclasses(self):
        assert accepts_type(Person, Student)
        assert not accepts_type(Student, Person)
        assert accepts_type(float, int)
        assert not accepts_type(int, str)

    def test_unions(self):
        assert accepts_type(Optional[int], int)
        assert not accepts_type(int, Optional[int])
        assert accepts_type(Union[int, str], Union[str, int])

    def test_any_and_literals(self):
        assert accepts_type(int, Any)
        assert accepts_type(Any, int)
        assert accepts_type(str, Literal["a"])
        assert not accepts_type(Literal["a"], str)


class TestContainerChecks:
    """Test input and output container checks"""

    def test_unpack_sequence_and_generator(self):
        assert unpack_container((1, 2)).values == [1, 2]
        container = unpack_container(x for x in range(3))
        assert container.values == [0, 1, 2]
        assert not container.is_mapping

    def test_unpack_mapping(self):
        container = unpack_container({"a": 1, "b": 2})

        assert container.is_mapping
        assert container.keys == ["a", "b"]
        assert container.values == [1, 2]
        assert container.type_name == "dict"

    def test_unsupported_inputs(self):
        for bad in (5, None, "text", b"bytes"):
            with pytest.raises(UnsupportedInputError, match="not implemented for"):
                unpack_container(bad)

    def test_check_output(self):
        check_output([], MutableSequence, "list")
        check_output({}, MutableMapping, "dict")

        with pytest.raises(OutputError, match=r"cannot set out \(tuple\)"):
            check_output((), MutableSequence, "list")

        with pytest.raises(OutputError, match="output should be a mutable sequence for input of type list"):
            check_output(0, MutableSequence, "list")

        with pytest.raises(OutputError, match=r"cannot set out \(mappingproxy\)"):
            check_output(type.__dict__, MutableMapping, "list")

    def test_check_elements_reports_index(self):
        signature = describe(square)

        with pytest.raises(TypeMismatchError, match=r"does not accept element 2 of type \(str\)"):
            check_elements(signature, 0, [1, 2, "3"], "mapper function")

    def test_check_result(self):
        check_result(describe(is_even), True, "predicate function", bool)

        with pytest.raises(ReturnTypeError, match=r"should return a \(bool\) and not a \(int\)"):
            check_result(describe(lambda x: x), 1, "predicate function", bool)

        with pytest.raises(ReturnTypeError, match=r"annotated to return \(int\)"):
            check_result(describe(square), "nope", "mapper function")

    def test_type_name(self):
        assert type_name(int) == "int"
        assert type_name(Any) == "Any"
        assert type_name(None) == "None"
        assert type_name(List[int]) == "List[int]"
