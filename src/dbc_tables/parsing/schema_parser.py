"""Parser for the schema DSL."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import ply.yacc as yacc

from dbc_tables.parsing.schema_lexer import SchemaLexer
from dbc_tables.schema import Schema
from dbc_tables.types import FieldDefinition, field_type_from_name


@dataclass
class FieldSpec:
    """Specification for a field before type resolution."""

    name: str
    type_name: str
    lineno: int


@dataclass
class SchemaSpec:
    """Specification for a whole schema before resolution."""

    name: str | None
    fields: list[FieldSpec]


class SchemaParser:
    """Parser for the schema DSL.

    Fields are ``name: type`` pairs separated by commas and/or newlines,
    optionally wrapped in ``TableName { ... }``.
    """

    tokens = SchemaLexer.tokens

    def __init__(self) -> None:
        self.lexer = SchemaLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_schema_bare(self, p: yacc.YaccProduction) -> None:
        """schema : field_block"""
        p[0] = SchemaSpec(name=None, fields=p[1])

    def p_schema_named(self, p: yacc.YaccProduction) -> None:
        """schema : IDENTIFIER LBRACE field_block RBRACE"""
        p[0] = SchemaSpec(name=p[1], fields=p[3])

    def p_schema_named_empty(self, p: yacc.YaccProduction) -> None:
        """schema : IDENTIFIER LBRACE RBRACE"""
        p[0] = SchemaSpec(name=p[1], fields=[])

    def p_field_block(self, p: yacc.YaccProduction) -> None:
        """field_block : field_list
                       | field_list COMMA"""
        p[0] = p[1]

    def p_field_list_single(self, p: yacc.YaccProduction) -> None:
        """field_list : field"""
        p[0] = [p[1]]

    def p_field_list_multiple(self, p: yacc.YaccProduction) -> None:
        """field_list : field_list field"""
        p[0] = p[1] + [p[2]]

    def p_field_list_comma(self, p: yacc.YaccProduction) -> None:
        """field_list : field_list COMMA field"""
        p[0] = p[1] + [p[3]]

    def p_field(self, p: yacc.YaccProduction) -> None:
        """field : IDENTIFIER COLON IDENTIFIER"""
        p[0] = FieldSpec(name=p[1], type_name=p[3], lineno=p.lineno(3))

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> Schema:
        """Parse schema text and return a Schema.

        Raises:
            SyntaxError: On malformed input or an unknown type name.
            ValueError: If a field name is repeated.
        """
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        spec = self.parser.parse(data, lexer=self.lexer.lexer)
        if spec is None:
            raise SyntaxError("Empty schema")

        fields = []
        for field_spec in spec.fields:
            try:
                field_type = field_type_from_name(field_spec.type_name)
            except ValueError as exc:
                raise SyntaxError(f"{exc} (line {field_spec.lineno})") from None
            fields.append(FieldDefinition(field_spec.name, field_type))

        return Schema(fields, name=spec.name)
