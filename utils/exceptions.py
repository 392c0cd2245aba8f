# utils/exceptions.py
"""
Error taxonomy for the mapping pipeline
"""


class MappingError(Exception):
    """Base class for every error a mapping run can surface to the caller"""


class ValidationError(MappingError):
    """Missing or invalid run inputs (no schemas, no source, bad output format)"""


class SourceIngestError(MappingError):
    """The tabular source could not be read"""


class SchemaParseError(MappingError):
    """An XSD document is not well-formed markup"""

    def __init__(self, schema_name: str, detail: str):
        self.schema_name = schema_name
        super().__init__(f"Invalid XSD '{schema_name}': {detail}")


class SchemaRecursionError(MappingError):
    """A complex type references itself directly or transitively"""

    def __init__(self, schema_name: str, type_chain):
        self.schema_name = schema_name
        self.type_chain = list(type_chain)
        chain = ' -> '.join(self.type_chain)
        super().__init__(f"Cyclic complex type in '{schema_name}': {chain}")


class OracleTransportError(MappingError):
    """Network failure or timeout while calling the scoring oracle"""


class OracleResponseError(MappingError):
    """The scoring oracle answered with something that is not a mapping list"""
