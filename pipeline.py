"""Luigi workflow wrapping the submission client: upload the VCF files of an analysis,
submit its documents and record the accessions in an SQLite database.

An analysis is described by a JSON file:

    {"alias": "Maize HapMap test", "center_name": "CSHL", "broker_name": "ENSEMBL GENOMES",
     "title": "...", "description": "...", "study_reference": "SRP011907", "run_reference": "SRR447750",
     "hold_date": "2030-12-24",
     "samples": [["IRGC103469/IRGC103469_aln_sorted.bam", "SRS302388"]],
     "files": [{"path": "Glab_var_chr1_flt.vcf", "assembly_reference": "GCA_000005005.2",
                "sequences": [["1", "GK000031.2"]]}]}

File paths are relative to the JSON file. A file entry may give "file_name" and "md5" instead
of reading them from "path".
"""
import datetime
import os
from typing import List

import jsonpickle
import luigi
import sqlalchemy
from luigi.contrib import sqla
from luigi.mock import MockTarget
from sqlalchemy import String

import ena_analysis
import ena_analysis.credentials
import ena_analysis.ftp
from ena_analysis import urls
from ena_analysis.client import SubmissionClient
from ena_analysis.metadata import REQUIRED_FIELDS
from ena_analysis.submit import Server

_optional_fields = ('analysis_center', 'broker_name')


class EnaTaskException(Exception):
    pass


def read_metadata(metadata_path: str) -> dict:
    with open(metadata_path) as in_file:
        return jsonpickle.decode(in_file.read())


def _file_paths(metadata_path: str) -> List[str]:
    base_dir = os.path.dirname(os.path.abspath(metadata_path))
    return [os.path.join(base_dir, f['path']) for f in read_metadata(metadata_path)['files'] if f.get('path')]


def build_analysis(metadata_path: str) -> ena_analysis.Analysis:
    """Fill an analysis builder from the JSON description."""
    meta = read_metadata(metadata_path)
    base_dir = os.path.dirname(os.path.abspath(metadata_path))

    def init(a: ena_analysis.AnalysisBuilder):
        for field in REQUIRED_FIELDS + _optional_fields:
            if field in meta:
                getattr(a, field)(meta[field])
        if meta.get('hold_date'):
            a.hold_date(datetime.date.fromisoformat(meta['hold_date']))
        with a.sample_mapping() as samples:
            for label, accession in meta.get('samples', []):
                samples.add(label, accession)
        for file_meta in meta.get('files', []):
            with a.vcf() as vcf:
                _fill_file(vcf, file_meta, base_dir)

    return ena_analysis.build_analysis(init)


def _fill_file(vcf, file_meta: dict, base_dir: str):
    if file_meta.get('path'):
        vcf.data_file(os.path.join(base_dir, file_meta['path']))
    if 'file_name' in file_meta:
        vcf.file_name(file_meta['file_name'])
    if 'md5' in file_meta:
        vcf.md5(file_meta['md5'])
    if 'assembly_reference' in file_meta:
        vcf.assembly_reference(file_meta['assembly_reference'])
    with vcf.sequence_mapping() as sequences:
        for label, accession in file_meta.get('sequences', []):
            sequences.add(label, accession)


class SubmitAnalyses(luigi.Task):
    """Spawns a StoreEnaSubmissionResult task for every analysis description."""
    metadata_paths = luigi.ListParameter()
    test = luigi.BoolParameter(default=False)

    def run(self):
        yield [StoreEnaSubmissionResult(path, test=self.test) for path in self.metadata_paths]
        with self.output().open('w') as out_file:
            out_file.write('done')

    def output(self):
        return MockTarget('submit_analyses_' + str(len(self.metadata_paths)))


class StoreEnaSubmissionResult(sqla.CopyToTable):
    """Store the outcome of submission to ENA in an SQLite database."""
    metadata_path = luigi.Parameter()
    test = luigi.BoolParameter()

    columns = [
        (['alias', String(512)], {'primary_key': True}),
        (['file_names', String(1024)], {}),
        (['submission_acc', String(128)], {}),
        (['analysis_acc', String(128)], {})
    ]
    table = 'EnaSubmissionResult'
    sqlite_path = urls.sqlite
    connection_string = 'sqlite://'  # in-memory database
    if sqlite_path:
        connection_string += '/' + sqlite_path

    def requires(self):
        return SubmitToEna(self.metadata_path, self.test)

    def copy(self, conn, ins_rows, table_bound):
        bound_cols = dict((c, sqlalchemy.bindparam("_" + c.key)) for c in table_bound.columns)
        inserter = table_bound.insert().prefix_with("OR IGNORE")
        ins = inserter.values(bound_cols)
        conn.execute(ins, ins_rows)


class SubmitToEna(luigi.Task):
    """Submit the analysis described under metadata_path to ENA and output the outcome."""
    metadata_path = luigi.Parameter()
    test = luigi.BoolParameter()
    cleanup = luigi.BoolParameter(default=False)

    resources = {'ena_submission_endpoint': 1}

    def requires(self):
        return [UploadToEna(path) for path in _file_paths(self.metadata_path)]

    def output(self):
        return MockTarget('submission_' + self.metadata_path)

    def run(self):
        analysis = build_analysis(self.metadata_path)
        documents = ena_analysis.render(analysis)
        server = Server.TEST if self.test else Server.PRODUCTION
        client = SubmissionClient(ena_analysis.credentials.from_environment(), server)

        result = client.submit(documents.submission_xml, documents.analysis_xml)
        if result.success:
            submission_acc, analysis_acc = result.submission_acc, result.analysis_acc
        elif result.existing_submission_acc:
            # resubmission of an alias ENA already knows, the analysis accession is not reported
            submission_acc, analysis_acc = result.existing_submission_acc, ''
        else:
            raise EnaTaskException(result.error)

        if self.cleanup:
            for path in _file_paths(self.metadata_path):
                client.delete_file(path)

        with self.output().open('w') as out_file:
            out_file.write('\t'.join([analysis.alias, ','.join(f.file_name for f in analysis.files),
                                      submission_acc, analysis_acc]))


class UploadToEna(luigi.Task):
    """Upload the file under path to the ENA upload area."""
    path = luigi.Parameter()

    def run(self):
        ena_analysis.ftp.upload_to_ena(self.path, ena_analysis.credentials.from_environment())

    def complete(self):
        # instead of opening a connection for each file, use cached result
        file_name = os.path.basename(self.path)
        return ena_analysis.ftp.is_present(file_name, ena_analysis.credentials.from_environment())
