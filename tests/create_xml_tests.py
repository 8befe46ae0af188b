import datetime
import os
import unittest
from xml.etree import ElementTree

from hamcrest import assert_that, is_, contains_string, not_, contains_exactly, not_none, none, starts_with

import ena_analysis.create_xml
from ena_analysis import urls
from ena_analysis.create_xml import EnaXmlException
from ena_analysis.metadata import build_analysis
from metadata_tests import TODAY, maize_hapmap


RESOURCES = os.path.join(os.path.dirname(__file__), 'resources')
ANALYSIS_SCHEMA = os.path.join(RESOURCES, 'sra_analysis.xsd')
SUBMISSION_SCHEMA = os.path.join(RESOURCES, 'sra_submission.xsd')


def _schema(name: str) -> str:
    return os.path.join(urls.schema_dir, name)


def with_hold_date(a):
    maize_hapmap(a)
    a.hold_date(datetime.date(2026, 12, 24))


def with_second_file(a):
    maize_hapmap(a)
    with a.vcf() as f:
        f.file_name('Glab_var_chr2_flt_1k.vcf')
        f.md5('10899e2ca49b37c8c37c4763616496ad')
        f.assembly_reference('GCA_000005005.2')
        with f.sequence_mapping() as m:
            m.add('3', 'GK000033.2')
            m.add('2', 'GK000032.2')


class CreateXmlTest(unittest.TestCase):
    analysis = build_analysis(maize_hapmap, TODAY)

    def test_create_submission_xml(self):
        xml = ena_analysis.create_xml.create_submission_xml(self.analysis)
        tree = ElementTree.fromstring(xml)
        assert_that(tree.tag, is_('SUBMISSION'))
        assert_that(tree.attrib['alias'], is_('Maize HapMap test'))
        assert_that(tree.attrib['center_name'], is_('CSHL'))
        assert_that(tree.attrib['broker_name'], is_('ENSEMBL GENOMES'))

        actions = tree.findall('ACTIONS/ACTION')
        assert_that(len(actions), is_(1))
        add = tree.find('ACTIONS/ACTION/ADD')
        assert_that(add.attrib['source'], is_('analysis.xml'))
        assert_that(add.attrib['schema'], is_('analysis'))
        assert_that(xml, not_(contains_string('HOLD')))

    def test_create_submission_hold_xml(self):
        xml = ena_analysis.create_xml.create_submission_xml(build_analysis(with_hold_date, TODAY))
        assert_that(xml, contains_string('<HOLD HoldUntilDate="2026-12-24"/>'))

    def test_submission_without_broker(self):
        def init(a):
            maize_hapmap(a)
            a.broker_name(None)

        tree = ElementTree.fromstring(ena_analysis.create_xml.create_submission_xml(build_analysis(init, TODAY)))
        assert_that(tree.get('broker_name'), none())

    def test_create_analysis_xml(self):
        xml = ena_analysis.create_xml.create_analysis_xml(self.analysis)
        assert_that(xml, contains_string('<STUDY_REF accession="SRP011907"/>'))
        assert_that(xml, contains_string('<RUN_REF accession="SRR447750"/>'))
        assert_that(xml, contains_string('<STANDARD accession="GCA_000005005.2"/>'))
        assert_that(xml, contains_string('<SEQUENCE accession="GK000031.2" label="1"/>'))
        assert_that(xml, contains_string(
            '<SAMPLE_REF label="IRGC103469/IRGC103469_aln_sorted.bam" accession="SRS302388"/>'))
        assert_that(xml, contains_string(
            '<SAMPLE_REF label="TOG7102/TOG7102_aln_sorted.bam" accession="SRS302394"/>'))
        assert_that(xml, contains_string('<SEQUENCE_VARIATION>'))
        assert_that(xml, contains_string(' filetype="vcf" '))
        assert_that(xml, contains_string(' filename="Glab_var_chr1_flt_1k.vcf" '))
        assert_that(xml, contains_string(' checksum="10899e2ca49b37c8c37c4763616496ac"'))

        tree = ElementTree.fromstring(xml)
        assert_that(tree.tag, is_('ANALYSIS'))
        assert_that(tree.attrib['analysis_center'], is_('CSHL'))
        assert_that(tree.find('TITLE').text, is_(self.analysis.title))
        assert_that(tree.find('DESCRIPTION').text, is_(self.analysis.description))
        assert_that(tree.find('ANALYSIS_TYPE/SEQUENCE_VARIATION/EXPERIMENT_TYPE').text,
                    is_('Whole genome sequencing'))
        f = tree.find('FILES/FILE')
        assert_that(f.attrib['checksum_method'], is_('MD5'))

    def test_element_order(self):
        tree = ElementTree.fromstring(ena_analysis.create_xml.create_analysis_xml(self.analysis))
        assert_that([child.tag for child in tree],
                    contains_exactly('TITLE', 'DESCRIPTION', 'STUDY_REF', 'SAMPLE_REF', 'SAMPLE_REF', 'SAMPLE_REF',
                                     'RUN_REF', 'ANALYSIS_TYPE', 'FILES'))
        variation = tree.find('ANALYSIS_TYPE/SEQUENCE_VARIATION')
        assert_that([child.tag for child in variation], contains_exactly('ASSEMBLY', 'SEQUENCE', 'EXPERIMENT_TYPE'))

    def test_mapping_order(self):
        xml = ena_analysis.create_xml.create_analysis_xml(build_analysis(with_second_file, TODAY))
        tree = ElementTree.fromstring(xml)
        samples = [(e.get('label'), e.get('accession')) for e in tree.findall('SAMPLE_REF')]
        assert_that(samples, contains_exactly(('IRGC103469/IRGC103469_aln_sorted.bam', 'SRS302388'),
                                              ('TOG7102/TOG7102_aln_sorted.bam', 'SRS302394'),
                                              ('TOG5467/TOG5467_aln_sorted.bam', 'SRS302390')))
        sequences = [e.get('label') for e in tree.findall('ANALYSIS_TYPE/SEQUENCE_VARIATION/SEQUENCE')]
        assert_that(sequences, contains_exactly('1', '3', '2'))
        file_names = [e.get('filename') for e in tree.findall('FILES/FILE')]
        assert_that(file_names, contains_exactly('Glab_var_chr1_flt_1k.vcf', 'Glab_var_chr2_flt_1k.vcf'))

    def test_special_characters(self):
        def init(a):
            maize_hapmap(a)
            a.description('SNPs & indels with QUAL < 30 removed')

        tree = ElementTree.fromstring(ena_analysis.create_xml.create_analysis_xml(build_analysis(init, TODAY)))
        assert_that(tree.find('DESCRIPTION').text, is_('SNPs & indels with QUAL < 30 removed'))

    def test_render_is_idempotent(self):
        first = ena_analysis.create_xml.render(self.analysis)
        second = ena_analysis.create_xml.render(self.analysis)
        assert_that(first, is_(second))
        assert_that(first.submission_xml, not_none())

    @unittest.skipUnless(urls.schema_dir, 'set [ENA schema] dir in ena-urls.cfg to a directory with the ENA XSDs, '
                                          'e.g. a copy of https://ftp.ebi.ac.uk/pub/databases/ena/doc/xsd/sra_1_5/')
    def test_documents_validate_against_ena_schema(self):
        submission_xml, analysis_xml = ena_analysis.create_xml.render(build_analysis(with_hold_date, TODAY))
        ena_analysis.create_xml.validate_xml(submission_xml, _schema('SRA.submission.xsd'))
        ena_analysis.create_xml.validate_xml(analysis_xml, _schema('SRA.analysis.xsd'))


class SchemaValidationTest(unittest.TestCase):
    def test_rendered_documents_are_valid(self):
        for init in (maize_hapmap, with_hold_date, with_second_file):
            with self.subTest(init=init.__name__):
                submission_xml, analysis_xml = ena_analysis.create_xml.render(build_analysis(init, TODAY))
                ena_analysis.create_xml.validate_xml(submission_xml, SUBMISSION_SCHEMA)
                ena_analysis.create_xml.validate_xml(analysis_xml, ANALYSIS_SCHEMA)

    def test_element_order_is_enforced(self):
        root = ElementTree.fromstring(ena_analysis.create_xml.create_analysis_xml(build_analysis(maize_hapmap, TODAY)))
        run_ref = root.find('RUN_REF')
        root.remove(run_ref)
        root.insert(0, run_ref)
        with self.assertRaises(EnaXmlException) as cm:
            ena_analysis.create_xml.validate_xml(ElementTree.tostring(root, encoding='unicode'), ANALYSIS_SCHEMA)
        assert_that(str(cm.exception), starts_with('line '))
        assert_that(str(cm.exception), contains_string('RUN_REF'))

    def test_reports_every_error(self):
        xml = ena_analysis.create_xml.create_analysis_xml(build_analysis(maize_hapmap, TODAY))
        xml = xml.replace('<ANALYSIS ', '<ANALYSIS spam="eggs" ')
        xml = xml.replace(' checksum="10899e2ca49b37c8c37c4763616496ac"', '')
        with self.assertRaises(EnaXmlException) as cm:
            ena_analysis.create_xml.validate_xml(xml, ANALYSIS_SCHEMA)
        assert_that(str(cm.exception), contains_string('spam'))
        assert_that(str(cm.exception), contains_string('checksum'))

    def test_submission_without_actions_content(self):
        with self.assertRaises(EnaXmlException):
            ena_analysis.create_xml.validate_xml('<SUBMISSION alias="a"><ACTIONS/></SUBMISSION>', SUBMISSION_SCHEMA)


if __name__ == '__main__':
    unittest.main()
