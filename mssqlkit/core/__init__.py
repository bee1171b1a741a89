"""Value typing, literal rendering, parameters and statement builders."""

from mssqlkit.core.builder import (
    Paging,
    QueryFragment,
    build_create_table,
    build_delete,
    build_drop_table,
    build_insert,
    build_insert_parameterized,
    build_select,
    build_stored_procedure_call,
    build_update,
    build_update_parameterized,
    build_where_clause,
)
from mssqlkit.core.literals import escape_string, quote_string, render_literal
from mssqlkit.core.parameters import Parameter, ParameterDirection, ParameterSet, build_in_clause, param
from mssqlkit.core.placeholders import ParameterStyle, convert_placeholders, extract_placeholders
from mssqlkit.core.result import Result
from mssqlkit.core.values import DataType, ValueKind, classify_value, coerce_value, infer_data_type

__all__ = (
    "DataType",
    "Paging",
    "Parameter",
    "ParameterDirection",
    "ParameterSet",
    "ParameterStyle",
    "QueryFragment",
    "Result",
    "ValueKind",
    "build_create_table",
    "build_delete",
    "build_drop_table",
    "build_in_clause",
    "build_insert",
    "build_insert_parameterized",
    "build_select",
    "build_stored_procedure_call",
    "build_update",
    "build_update_parameterized",
    "build_where_clause",
    "classify_value",
    "coerce_value",
    "convert_placeholders",
    "escape_string",
    "extract_placeholders",
    "infer_data_type",
    "param",
    "quote_string",
    "render_literal",
)
