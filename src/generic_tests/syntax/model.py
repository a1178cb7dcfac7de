from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class Span:
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Path:
    segments: Tuple[str, ...]
    leading_colon: bool = False

    @classmethod
    def from_str(cls, text: str) -> "Path":
        text = text.strip()
        leading = text.startswith("::")
        if leading:
            text = text[2:]
        return cls(
            segments=tuple(part.strip() for part in text.split("::")),
            leading_colon=leading,
        )

    def is_ident(self, name: str) -> bool:
        return not self.leading_colon and self.segments == (name,)

    def __str__(self) -> str:
        text = "::".join(self.segments)
        return "::" + text if self.leading_colon else text


class AttrStyle(StrEnum):
    OUTER = "outer"
    INNER = "inner"


@dataclass(frozen=True)
class Attribute:
    path: Path
    args: Optional[str] = None
    style: AttrStyle = AttrStyle.OUTER
    span: Span = field(default_factory=Span, compare=False)


@dataclass(frozen=True, order=True)
class Lifetime:
    name: str

    STATIC_NAME = "static"
    PLACEHOLDER_NAME = "_"

    @property
    def is_static(self) -> bool:
        return self.name == self.STATIC_NAME

    @property
    def is_placeholder(self) -> bool:
        return self.name == self.PLACEHOLDER_NAME

    def __str__(self) -> str:
        return f"'{self.name}"


# Type expressions. All nodes are immutable so resolved shapes can be used
# as catalog keys.


@dataclass(frozen=True)
class ConstArg:
    text: str


@dataclass(frozen=True)
class AssocBinding:
    ident: str
    ty: "Type"


GenericArgument = Union[Lifetime, "Type", ConstArg, AssocBinding]


@dataclass(frozen=True)
class AngleArguments:
    args: Tuple[GenericArgument, ...]
    turbofish: bool = False


@dataclass(frozen=True)
class ParenthesizedArguments:
    inputs: Tuple["Type", ...]
    output: Optional["Type"] = None


PathArguments = Union[AngleArguments, ParenthesizedArguments]


@dataclass(frozen=True)
class PathSegment:
    ident: str
    arguments: Optional[PathArguments] = None


@dataclass(frozen=True)
class TypePath:
    segments: Tuple[PathSegment, ...]
    leading_colon: bool = False


@dataclass(frozen=True)
class BoundLifetimes:
    lifetimes: Tuple[Lifetime, ...]


@dataclass(frozen=True)
class TraitBound:
    path: TypePath
    lifetimes: Optional[BoundLifetimes] = None
    maybe: bool = False
    parenthesized: bool = False


@dataclass(frozen=True)
class LifetimeBound:
    lifetime: Lifetime


TypeParamBound = Union[TraitBound, LifetimeBound]


@dataclass(frozen=True)
class PathType:
    path: TypePath


@dataclass(frozen=True)
class ReferenceType:
    elem: "Type"
    lifetime: Optional[Lifetime] = None
    mutable: bool = False


@dataclass(frozen=True)
class PointerType:
    elem: "Type"
    mutable: bool = False


@dataclass(frozen=True)
class SliceType:
    elem: "Type"


@dataclass(frozen=True)
class ArrayType:
    elem: "Type"
    length: str


@dataclass(frozen=True)
class TupleType:
    elems: Tuple["Type", ...] = ()


@dataclass(frozen=True)
class ParenType:
    elem: "Type"


@dataclass(frozen=True)
class BareFnArg:
    ty: "Type"
    name: Optional[str] = None


@dataclass(frozen=True)
class BareFnType:
    inputs: Tuple[BareFnArg, ...] = ()
    output: Optional["Type"] = None
    lifetimes: Optional[BoundLifetimes] = None
    unsafety: bool = False
    abi: Optional[str] = None
    variadic: bool = False


@dataclass(frozen=True)
class TraitObjectType:
    bounds: Tuple[TypeParamBound, ...]
    dyn: bool = True


@dataclass(frozen=True)
class ImplTraitType:
    bounds: Tuple[TypeParamBound, ...]


@dataclass(frozen=True)
class QualifiedPathType:
    """`<Ty as Trait>::Assoc`; `trait_path` is None for `<Ty>::Assoc`."""

    qself: "Type"
    trait_path: Optional[TypePath]
    segments: Tuple[PathSegment, ...]


@dataclass(frozen=True)
class NeverType:
    pass


@dataclass(frozen=True)
class InferType:
    pass


@dataclass(frozen=True)
class VerbatimType:
    text: str


Type = Union[
    PathType,
    ReferenceType,
    PointerType,
    SliceType,
    ArrayType,
    TupleType,
    ParenType,
    BareFnType,
    TraitObjectType,
    ImplTraitType,
    QualifiedPathType,
    NeverType,
    InferType,
    VerbatimType,
]

UNIT_TYPE = TupleType(())


# Generics and signatures.


@dataclass(frozen=True)
class LifetimeParam:
    lifetime: Lifetime
    bounds: Tuple[Lifetime, ...] = ()


@dataclass(frozen=True)
class TypeParam:
    ident: str
    bounds: Tuple[TypeParamBound, ...] = ()
    default: Optional[Type] = None


@dataclass(frozen=True)
class ConstParam:
    ident: str
    ty: Type
    default: Optional[str] = None


GenericParam = Union[LifetimeParam, TypeParam, ConstParam]


@dataclass(frozen=True)
class Generics:
    params: Tuple[GenericParam, ...] = ()
    where_clause: Optional[str] = None

    def lifetime_params(self) -> Tuple[LifetimeParam, ...]:
        return tuple(param for param in self.params if isinstance(param, LifetimeParam))

    def type_and_const_params(self) -> Tuple[Union[TypeParam, ConstParam], ...]:
        return tuple(
            param for param in self.params if isinstance(param, (TypeParam, ConstParam))
        )


@dataclass(frozen=True)
class IdentPattern:
    ident: str
    mutable: bool = False
    by_ref: bool = False
    subpattern: Optional[str] = None


@dataclass(frozen=True)
class WildcardPattern:
    pass


@dataclass(frozen=True)
class VerbatimPattern:
    text: str


Pattern = Union[IdentPattern, WildcardPattern, VerbatimPattern]


@dataclass(frozen=True)
class FnArg:
    pattern: Pattern
    ty: Type
    attrs: Tuple[Attribute, ...] = ()
    span: Span = field(default_factory=Span, compare=False)


@dataclass(frozen=True)
class Receiver:
    text: str = "self"
    span: Span = field(default_factory=Span, compare=False)


FnInput = Union[FnArg, Receiver]


@dataclass(frozen=True)
class Signature:
    ident: str
    inputs: Tuple[FnInput, ...] = ()
    output: Optional[Type] = None
    generics: Generics = field(default_factory=Generics)
    constness: bool = False
    asyncness: bool = False
    unsafety: bool = False
    abi: Optional[str] = None
    variadic: bool = False


# Items. These are mutable: classification strips attributes in place and
# instantiation fills marker modules.


@dataclass
class Block:
    stmts: list = field(default_factory=list)


@dataclass
class Function:
    sig: Signature
    attrs: list[Attribute] = field(default_factory=list)
    vis: str = ""
    body: Block = field(default_factory=Block)
    span: Span = field(default_factory=Span)

    @property
    def ident(self) -> str:
        return self.sig.ident


@dataclass
class Module:
    ident: str
    content: Optional[list] = field(default_factory=list)
    attrs: list[Attribute] = field(default_factory=list)
    vis: str = ""
    span: Span = field(default_factory=Span)


@dataclass
class VerbatimItem:
    text: str
    span: Span = field(default_factory=Span)


Item = Union[Function, Module, VerbatimItem]
