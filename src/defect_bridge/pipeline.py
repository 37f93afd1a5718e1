from __future__ import annotations

import logging

from defect_bridge.config import load_rules
from defect_bridge.connect import ConnectSession, DefectSource, ServiceError, build_client
from defect_bridge.db import IssueStore
from defect_bridge.models import (
    AppConfig,
    ConnectSettings,
    DefectInstance,
    Event,
    ImportSummary,
    Issue,
    MergedDefect,
    Project,
    Resource,
    Rule,
)
from defect_bridge.paths import rewrite_path
from defect_bridge.resources import SourceTree
from defect_bridge.rules import RulesProfile, repository_for, rule_key_for

logger = logging.getLogger(__name__)

ISSUE_ID_ATTRIBUTE = "coverity-issue-id"


def should_execute(config: AppConfig, profile: RulesProfile, language: str | None) -> bool:
    """Whether an import can produce anything: enabled, with active rules for the language.

    Without a configured language any active rule counts.
    """
    if not config.enabled:
        return False
    if language is None:
        return len(profile.active_rules()) > 0
    return len(profile.active_rules_by_repository(repository_for(language))) > 0


def run_import(
    config: AppConfig,
    *,
    source: DefectSource | None = None,
    store: IssueStore | None = None,
    profile: RulesProfile | None = None,
) -> ImportSummary:
    logger.info("enabled=%s", config.enabled)
    if not config.enabled:
        return ImportSummary(status="DISABLED", project=config.project)

    profile = profile if profile is not None else load_rules(config.rules_path)
    if not should_execute(config, profile, config.sources.language):
        logger.info("No active rules for language %s, nothing to import", config.sources.language)
        return ImportSummary(status="NO_ACTIVE_RULES", project=config.project)

    tree = SourceTree.from_settings(config.sources)
    session = ConnectSession(source if source is not None else build_client(config.connect))

    try:
        project = session.resolve_project(config.project)
    except ServiceError:
        logger.error(
            "Error while trying to find project, check connection settings: %s",
            config.project,
            exc_info=True,
        )
        return ImportSummary(status="PROJECT_NOT_FOUND", project=config.project)

    if project is None:
        logger.error("Couldn't find project: %s", config.project)
        return ImportSummary(status="PROJECT_NOT_FOUND", project=config.project)

    logger.info("Found project: %s (%s)", project.name, project.project_key)

    try:
        logger.info("Fetching defects for project: %s", project.name)
        defects = session.list_project_defects(project)
        stream_defects = session.fetch_stream_defects(defect.cid for defect in defects)
    except ServiceError as exc:
        logger.error("Error fetching defects for project %s", project.name, exc_info=True)
        return ImportSummary(status="FAILED", project=config.project, notes=str(exc))

    logger.info("Found %d defects", len(stream_defects))

    owns_store = store is None
    if store is None:
        store = IssueStore(config.db_path)
        store.init_schema()

    issues_count = 0
    skipped_defects = 0
    skipped_instances = 0
    run_id = store.start_run(project=config.project)

    try:
        for defect in defects:
            path = rewrite_path(
                defect.file_path,
                strip_prefix=config.strip_prefix,
                source_path=config.source_path,
            )
            resource = tree.resolve_file(path)
            if resource is None:
                logger.info(
                    "Cannot find the file '%s' in %s, skipping defect (CID %d)",
                    path,
                    [str(item) for item in tree.source_dirs],
                    defect.cid,
                )
                skipped_defects += 1
                continue

            stream_defect = stream_defects.get(defect.cid)
            if stream_defect is None:
                logger.info("No stream defect returned for CID %d, skipping defect", defect.cid)
                skipped_defects += 1
                continue

            for instance in stream_defect.instances:
                issue = _build_issue(
                    config.connect,
                    profile,
                    tree,
                    project,
                    defect,
                    resource,
                    instance,
                )
                if issue is None:
                    skipped_instances += 1
                    continue

                created = store.add_issue(run_id, resource, issue)
                logger.debug("issue=%s result=%s", issue, created)
                if created:
                    issues_count += 1
                else:
                    logger.info("Couldn't create issue: %d", defect.cid)
                    skipped_instances += 1

        store.finish_run(
            run_id,
            status="SUCCESS",
            defects_count=len(defects),
            issues_count=issues_count,
            skipped_defects=skipped_defects,
            skipped_instances=skipped_instances,
        )
        return ImportSummary(
            status="SUCCESS",
            project=config.project,
            run_id=run_id,
            defects_count=len(defects),
            issues_count=issues_count,
            skipped_defects=skipped_defects,
            skipped_instances=skipped_instances,
        )
    except Exception as exc:
        store.finish_run(
            run_id,
            status="FAILED",
            defects_count=len(defects),
            issues_count=issues_count,
            skipped_defects=skipped_defects,
            skipped_instances=skipped_instances,
            notes=str(exc),
        )
        raise
    finally:
        if owns_store:
            store.close()


def _build_issue(
    settings: ConnectSettings,
    profile: RulesProfile,
    tree: SourceTree,
    project: Project,
    defect: MergedDefect,
    resource: Resource,
    instance: DefectInstance,
) -> Issue | None:
    main_event = get_main_event(instance)
    if main_event is None:
        logger.info("No main event for CID %d (%s), skipping instance", defect.cid, instance.checker_name)
        return None

    language = tree.effective_language(resource)
    if language is None:
        logger.info("No language for '%s', skipping CID %d", resource.path, defect.cid)
        return None

    rule_key = rule_key_for(language, instance)
    rule = profile.get_active_rule(rule_key.repository, rule_key.rule)
    if rule is None:
        logger.info("Rule %s is not active, skipping CID %d", rule_key, defect.cid)
        return None

    url = defect_url(settings, project.project_key, defect.cid)
    return Issue(
        rule_key=rule.rule_key,
        file_path=resource.path,
        line=main_event.line_number,
        message=issue_message(rule, url),
        attributes={ISSUE_ID_ATTRIBUTE: str(defect.cid)},
    )


def get_main_event(instance: DefectInstance) -> Event | None:
    for event in instance.events:
        if event.main:
            return event
    return None


def defect_url(settings: ConnectSettings, project_key: int, cid: int) -> str:
    return (
        f"{settings.scheme}://{settings.host}:{settings.port}"
        f"/sourcebrowser.htm?projectId={project_key}#mergedDefectId={cid}"
    )


def issue_message(rule: Rule, url: str) -> str:
    return f"{rule.description}\n\nView in Coverity Connect: \n{url}"
