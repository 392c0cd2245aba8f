# extractors/xsd_flattener.py
"""
Flatten XSD documents into a dictionary of addressable leaf paths
"""
from lxml import etree
from typing import Dict, Iterable, List, Optional, Union
import logging

from mapper.schemas import TargetPathEntry
from utils.exceptions import SchemaParseError, SchemaRecursionError

logger = logging.getLogger(__name__)

GROUPINGS = ('sequence', 'choice', 'all')


def _local(value: Optional[str]) -> Optional[str]:
    """Strip a namespace prefix (xs:string -> string)"""
    if value is None:
        return None
    return str(value).split(':')[-1]


def _tag(node) -> str:
    if not isinstance(node.tag, str):
        return ''
    return etree.QName(node).localname


def _children(node, name: str) -> List:
    return [child for child in node if _tag(child) == name]


def create_safe_xml_parser():
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=False,
        remove_comments=True,
        remove_pis=True
    )


def deduplicate_entries(entries: Iterable[TargetPathEntry]) -> List[TargetPathEntry]:
    """Keep the first entry per (schema, path), preserving order"""
    kept: Dict[tuple, TargetPathEntry] = {}
    for entry in entries:
        first = kept.get(entry.key)
        if first is None:
            kept[entry.key] = entry
        elif first.type != entry.type:
            logger.warning(
                f"Conflicting types for {entry.schema_name}:{entry.path} "
                f"({first.type} vs {entry.type}), keeping {first.type}"
            )
    return list(kept.values())


class XSDFlattener:
    """
    Resolve element declarations of one XSD into leaf TargetPathEntry rows

    Only element/complexType/sequence/choice/all are understood. Named
    complex types are expanded recursively; a type that is already being
    expanded higher up the chain raises SchemaRecursionError.
    """

    def __init__(self, schema_name: str, xsd_text: Union[str, bytes]):
        self.schema_name = schema_name
        self.root = self._parse(xsd_text)
        self.complex_types: Dict[str, etree._Element] = {}
        self.entries: List[TargetPathEntry] = []

    def _parse(self, xsd_text):
        data = xsd_text.encode('utf-8') if isinstance(xsd_text, str) else xsd_text
        try:
            return etree.fromstring(data, parser=create_safe_xml_parser())
        except etree.XMLSyntaxError as e:
            raise SchemaParseError(self.schema_name, str(e)) from e

    def _schema_root(self):
        if self.root is None:
            return None
        if _tag(self.root) == 'schema':
            return self.root
        # Lenient: any document whose root directly declares elements
        if _children(self.root, 'element'):
            return self.root
        return None

    def flatten(self) -> List[TargetPathEntry]:
        schema = self._schema_root()
        if schema is None:
            logger.warning(f"No schema root found in {self.schema_name}")
            return []

        # Last definition wins on name collisions
        for ct in _children(schema, 'complexType'):
            name = ct.get('name')
            if name:
                self.complex_types[name] = ct

        roots = _children(schema, 'element')
        if not roots:
            logger.warning(f"No top-level elements declared in {self.schema_name}")
            return []

        self.entries = []
        for element in roots:
            self._walk(element, '', ())

        flattened = deduplicate_entries(self.entries)
        logger.info(
            f"Flattened {self.schema_name}: {len(flattened)} leaf paths "
            f"from {len(roots)} root elements, {len(self.complex_types)} named types"
        )
        return flattened

    def _child_elements(self, complex_type) -> List:
        if complex_type is None:
            return []
        kids = []
        for grouping in GROUPINGS:
            for group in _children(complex_type, grouping):
                kids.extend(_children(group, 'element'))
        return kids

    def _walk(self, element, prefix: str, visiting: tuple):
        name = element.get('name') or _local(element.get('ref')) or '(anon)'
        path = f"{prefix}/{name}" if prefix else name
        type_name = _local(element.get('type'))

        complex_type = None
        if type_name and type_name in self.complex_types:
            if type_name in visiting:
                raise SchemaRecursionError(self.schema_name, visiting + (type_name,))
            complex_type = self.complex_types[type_name]
            visiting = visiting + (type_name,)
        else:
            inline = _children(element, 'complexType')
            if inline:
                complex_type = inline[0]

        kids = self._child_elements(complex_type)
        if not kids:
            if type_name:
                leaf_type = type_name
            elif complex_type is not None:
                leaf_type = 'complexType'
            else:
                leaf_type = 'simpleType'
            self.entries.append(TargetPathEntry(
                schema_name=self.schema_name,
                path=path,
                name=name,
                type=leaf_type,
                min_occurs=element.get('minOccurs', '1'),
                max_occurs=element.get('maxOccurs', '1'),
            ))
            return

        for kid in kids:
            self._walk(kid, path, visiting)


def flatten(schema_name: str, xsd_text: Union[str, bytes]) -> List[TargetPathEntry]:
    """Parse one XSD and return its deduplicated leaf paths"""
    return XSDFlattener(schema_name, xsd_text).flatten()


def build_target_dictionary(schema_files, skip_invalid: bool = False) -> List[TargetPathEntry]:
    """
    Flatten several XSD files into one dictionary

    Args:
        schema_files: Iterable of (file name, XSD text or bytes)
        skip_invalid: Log and skip files that fail to parse or recurse
            instead of aborting

    Returns:
        Merged entries, first occurrence of each (schema, path) kept
    """
    merged: List[TargetPathEntry] = []
    for schema_name, xsd_text in schema_files:
        try:
            merged.extend(flatten(schema_name, xsd_text))
        except (SchemaParseError, SchemaRecursionError) as e:
            if not skip_invalid:
                raise
            logger.warning(f"Skipping {schema_name}: {str(e)}")
    return deduplicate_entries(merged)
