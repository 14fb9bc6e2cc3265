"""
Export driver: document envelope, repository object, class tree, then every
object discovered through references.
"""

from typing import Optional, TextIO

from rich import print as rprint

from ..adaptors import get_session
from ..api import OdmaRepository, OdmaSession
from ..config import Config
from ..exceptions import FATAL_ERRORS, ObjectNotFoundError
from ..utils import logger
from .class_tree import ClassTreeWalker
from .context import ExportContext, ExportStatistics
from .dumper import ObjectDumper
from .encoder import ValueEncoder, escape_xml
from .filter import ExclusionFilter
from .writer import BufferedWriter

XML_NAMESPACE = "http://www.opendma.org/XMLRepository"


class XmlExporter:
    """
    Writes the whole object graph of one repository as a single XML document.
    """

    def __init__(self, config: Config):
        self.config = config
        self.exclusion_filter = ExclusionFilter.from_config(config)
        self.context: Optional[ExportContext] = None

    def export(
        self, out: TextIO, session: OdmaSession, repository: OdmaRepository
    ) -> ExportStatistics:
        self.context = context = ExportContext()
        encoder = ValueEncoder(
            context,
            self.exclusion_filter,
            export_content=self.config.export_content,
            content_directory=self.config.content_directory,
        )
        dumper = ObjectDumper(out, context, encoder)
        repository_id = str(repository.id)

        out.write('<?xml version="1.0" encoding="UTF-8"?>\n')
        out.write(
            f'<OdmaXmlRepository xmlns="{XML_NAMESPACE}"'
            f' repositoryObjectId="{escape_xml(repository_id)}">\n'
        )

        logger.info("Exporting Repository object...")
        dumper.dump(repository)

        ClassTreeWalker(dumper, context).walk(repository.root_class)
        context.statistics.sample_memory()

        logger.info("Exporting referenced objects...")
        self._drain_pending(session, repository_id, dumper)

        out.write("</OdmaXmlRepository>\n")
        context.statistics.finish()
        return context.statistics

    def _drain_pending(self, session: OdmaSession, repository_id: str, dumper: ObjectDumper):
        context = self.context
        while context.pending:
            object_id, class_qname = context.pop_pending()
            logger.info(f"Exporting referenced object {object_id} ({class_qname})")
            try:
                referenced = session.get_object(repository_id, object_id)
                dumper.dump(referenced)
            except ObjectNotFoundError:
                context.statistics.objects_not_found += 1
                logger.error(f"  Error: object {object_id} not found.")
                continue
            except FATAL_ERRORS:
                raise
            except Exception as e:
                context.statistics.fetch_errors += 1
                logger.opt(exception=e).error(f"  Error exporting object {object_id}:")
                continue
            if context.statistics.objects_exported % 1000 == 0:
                context.statistics.sample_memory()


def run_export(config: Config) -> ExportStatistics:
    """Open the session, fetch the repository and write the configured file."""
    config.validate_for_run()
    config.log_configuration()

    session = get_session(config)
    repository = session.get_repository(config.repository_id)

    logger.info("Performing export...")
    with BufferedWriter(config.outfile) as out:
        statistics = XmlExporter(config).export(out, session, repository)
    logger.info("Export finished.")
    return statistics


def print_export_summary(stats: ExportStatistics):
    """Print summary of an export run."""
    rprint("\n[bold green]═══════════════════════════════════════════════[/bold green]")
    rprint("[bold green]          EXPORT SUMMARY[/bold green]")
    rprint("[bold green]═══════════════════════════════════════════════[/bold green]")
    rprint(f"[cyan]Objects exported:[/cyan] {stats.objects_exported}")
    rprint(f"[cyan]  classes:[/cyan] {stats.classes_exported}")
    rprint(f"[cyan]  property infos:[/cyan] {stats.property_infos_exported}")
    rprint(f"[cyan]  inline (non-retrievable):[/cyan] {stats.inline_objects}")
    rprint(f"[cyan]Content files:[/cyan] {stats.content_files}")
    rprint(f"[cyan]Duplicates skipped:[/cyan] {stats.duplicates_skipped}")
    rprint(f"[cyan]Errors encountered:[/cyan] {stats.errors_encountered}")
    rprint(f"[cyan]  property errors:[/cyan] {stats.property_errors}")
    rprint(f"[cyan]  object errors:[/cyan] {stats.object_errors}")
    rprint(f"[cyan]  objects not found:[/cyan] {stats.objects_not_found}")
    rprint(f"[cyan]  fetch errors:[/cyan] {stats.fetch_errors}")
    rprint(f"[cyan]Total Duration:[/cyan] {stats.duration:.1f}s")
    if stats.peak_memory_mb > 0:
        rprint(f"[cyan]Peak memory:[/cyan] {stats.peak_memory_mb:.1f}MB")
    rprint("[bold green]═══════════════════════════════════════════════[/bold green]\n")
