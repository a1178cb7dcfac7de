from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class SpanDTO(BaseModel):
    line: int = 0
    column: int = 0


class AttributeDTO(BaseModel):
    path: str
    args: Optional[str] = None
    style: Literal["outer", "inner"] = "outer"
    span: Optional[SpanDTO] = None


class LifetimeParamDTO(BaseModel):
    kind: Literal["lifetime"]
    name: str
    bounds: List[str] = []


class TypeParamDTO(BaseModel):
    kind: Literal["type"]
    ident: str
    bounds: Optional[str] = None
    default: Optional[str] = None


class ConstParamDTO(BaseModel):
    kind: Literal["const"]
    ident: str
    ty: str
    default: Optional[str] = None


GenericParamDTO = Annotated[
    Union[LifetimeParamDTO, TypeParamDTO, ConstParamDTO],
    Field(discriminator="kind"),
]


class ArgDTO(BaseModel):
    kind: Literal["arg"] = "arg"
    pattern: str
    ty: str
    attrs: List[AttributeDTO] = []
    span: Optional[SpanDTO] = None


class ReceiverDTO(BaseModel):
    kind: Literal["receiver"]
    text: str = "self"
    span: Optional[SpanDTO] = None


InputDTO = Union[ArgDTO, ReceiverDTO]


class FunctionDTO(BaseModel):
    kind: Literal["fn"]
    ident: str
    attrs: List[AttributeDTO] = []
    vis: str = ""
    constness: bool = False
    asyncness: bool = False
    unsafety: bool = False
    abi: Optional[str] = None
    generics: List[GenericParamDTO] = []
    where_clause: Optional[str] = None
    inputs: List[InputDTO] = []
    variadic: bool = False
    output: Optional[str] = None
    body: str = ""
    span: Optional[SpanDTO] = None


class VerbatimItemDTO(BaseModel):
    kind: Literal["verbatim"]
    text: str
    span: Optional[SpanDTO] = None


class ModuleDTO(BaseModel):
    kind: Literal["mod"] = "mod"
    ident: str
    attrs: List[AttributeDTO] = []
    vis: str = ""
    content: Optional[List[ItemDTO]] = []
    span: Optional[SpanDTO] = None


ItemDTO = Annotated[
    Union[ModuleDTO, FunctionDTO, VerbatimItemDTO],
    Field(discriminator="kind"),
]

ModuleDTO.model_rebuild()


class DocumentDTO(BaseModel):
    options: Optional[str] = None
    module: ModuleDTO


class CarrierDTO(BaseModel):
    ident: str
    lifetimes: List[str] = []
    declaration: str


class TestFunctionDTO(BaseModel):
    ident: str
    asyncness: bool = False
    unsafety: bool = False
    generic_arity: int
    forwarded_attrs: List[str] = []
    args_carrier: Optional[str] = None
    return_carrier: Optional[str] = None


class MarkerDTO(BaseModel):
    path: List[str]
    depth: int
    arguments: str


class PlanResponse(BaseModel):
    module: str
    test_functions: List[TestFunctionDTO] = []
    carriers: List[CarrierDTO] = []
    markers: List[MarkerDTO] = []
    errors: List[str] = []
    stats: Dict[str, int] = {}
