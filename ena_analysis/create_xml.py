from typing import NamedTuple

from lxml import etree

from ena_analysis.metadata import Analysis

ANALYSIS_SOURCE = 'analysis.xml'
EXPERIMENT_TYPE = 'Whole genome sequencing'


class EnaXmlException(Exception):
    pass


class Documents(NamedTuple):
    submission_xml: str
    analysis_xml: str


def _set_attributes(element, *attributes):
    """Attributes are (name, value) pairs written in the given order, pairs with an empty value are left out."""
    for name, value in attributes:
        if value:
            element.set(name, value)


def _element(parent, tag: str, *attributes, text: str = None):
    element = etree.SubElement(parent, tag)
    _set_attributes(element, *attributes)
    if text is not None:
        element.text = text
    return element


def _to_string(root) -> str:
    return etree.tostring(root, pretty_print=True, encoding='unicode')


def create_submission_xml(analysis: Analysis) -> str:
    """Create the 'submission' XML document for programmatic submission to ENA, as described here:
    https://ena-docs.readthedocs.io/en/latest/submit/general-guide/programmatic.html"""
    submission = etree.Element('SUBMISSION')
    _set_attributes(submission, ('alias', analysis.alias), ('center_name', analysis.center_name),
                    ('broker_name', analysis.broker_name))

    actions = _element(submission, 'ACTIONS')
    add = _element(actions, 'ACTION')
    _element(add, 'ADD', ('source', ANALYSIS_SOURCE), ('schema', 'analysis'))
    if analysis.hold_date is not None:
        hold = _element(actions, 'ACTION')
        _element(hold, 'HOLD', ('HoldUntilDate', analysis.hold_date.isoformat()))
    return _to_string(submission)


def create_analysis_xml(analysis: Analysis) -> str:
    """Create the 'analysis' XML document for a sequence variation (VCF) submission, as described here:
    https://ena-docs.readthedocs.io/en/latest/submit/analyses/sequence-variation.html

    Child elements follow the order of the SRA.analysis.xsd sequence."""
    root = etree.Element('ANALYSIS')
    _set_attributes(root, ('alias', analysis.alias), ('center_name', analysis.center_name),
                    ('broker_name', analysis.broker_name), ('analysis_center', analysis.analysis_center))

    _element(root, 'TITLE', text=analysis.title)
    _element(root, 'DESCRIPTION', text=analysis.description)
    _element(root, 'STUDY_REF', ('accession', analysis.study_reference))
    for sample in analysis.sample_mapping:
        _element(root, 'SAMPLE_REF', ('label', sample.label), ('accession', sample.accession))
    _element(root, 'RUN_REF', ('accession', analysis.run_reference))

    analysis_type = _element(root, 'ANALYSIS_TYPE')
    variation = _element(analysis_type, 'SEQUENCE_VARIATION')
    assembly = _element(variation, 'ASSEMBLY')
    _element(assembly, 'STANDARD', ('accession', analysis.files[0].assembly_reference))
    for f in analysis.files:
        for sequence in f.sequence_mapping:
            _element(variation, 'SEQUENCE', ('accession', sequence.accession), ('label', sequence.label))
    _element(variation, 'EXPERIMENT_TYPE', text=EXPERIMENT_TYPE)

    files = _element(root, 'FILES')
    for f in analysis.files:
        _element(files, 'FILE', ('filename', f.file_name), ('filetype', f.file_type.value),
                 ('checksum_method', 'MD5'), ('checksum', f.md5))
    return _to_string(root)


def render(analysis: Analysis) -> Documents:
    return Documents(create_submission_xml(analysis), create_analysis_xml(analysis))


def validate_xml(xml: str, schema_path: str):
    """Validate a document against an ENA XSD, e.g. SRA.analysis.xsd from
    https://ftp.ebi.ac.uk/pub/databases/ena/doc/xsd/sra_1_5/"""
    schema = etree.XMLSchema(etree.parse(schema_path))
    document = etree.fromstring(xml.encode())
    if not schema.validate(document):
        errors = ['line {0}: {1}'.format(e.line, e.message) for e in schema.error_log]
        raise EnaXmlException('\n'.join(errors))
