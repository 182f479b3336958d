"""
Deterministic content-to-project attribution

Rule engine deciding which creator projects a piece of social content is
about: platform rules first (pump.fun, Zora, broadcast accounts), then
cashtag / hashtag / project-name keyword matching with tiered confidence.
"""

from typing import Dict, List, Optional

from attribution_worker.core.logging import get_logger
from ..models import (
    AttributionMode,
    AttributionReason,
    ConfidenceLevel,
    ContentAttributionConfig,
    ContentAttributionRecord,
    ContentAttributionResult,
    ContentMatch,
    ContentPlatform,
    ContentType,
    Project,
    ProjectSocialLink,
    RawContent,
)
from .content_parsers import (
    contains_project_name,
    extract_signals,
    matches_token_symbol,
    normalize_symbol,
)

logger = get_logger(__name__)

KEYWORD_MODES = (AttributionMode.MENTIONS_ONLY, AttributionMode.PRIMARY)
ZORA_STREAM_TYPES = (ContentType.STREAM, ContentType.VIDEO)

REASON_LABELS: Dict[AttributionReason, str] = {
    AttributionReason.CASHTAG: "Cashtag Match",
    AttributionReason.HASHTAG: "Hashtag Match",
    AttributionReason.BROADCAST: "Broadcast Mode",
    AttributionReason.PUMPFUN_STREAM: "Pump.fun Stream",
    AttributionReason.ZORA_CREATOR_STREAM: "Zora Creator Stream",
    AttributionReason.ZORA_CONTENT_MATCH: "Zora Content Match",
    AttributionReason.NAME_MENTION: "Project Name Mentioned",
    AttributionReason.MANUAL: "Manual Override",
    AttributionReason.NONE: "No Match",
}


def get_confidence_label(confidence: float) -> str:
    if confidence >= ConfidenceLevel.CERTAIN:
        return "Certain"
    if confidence >= ConfidenceLevel.VERY_HIGH:
        return "Very High"
    if confidence >= ConfidenceLevel.HIGH:
        return "High"
    if confidence >= ConfidenceLevel.MEDIUM:
        return "Medium"
    return "Low"


def get_reason_label(reason: AttributionReason) -> str:
    return REASON_LABELS.get(reason, reason.value)


class ContentAttributionEngine:
    """Attributes raw social content to the projects whose accounts posted it"""

    def __init__(self, config: Optional[ContentAttributionConfig] = None):
        self.config = config or ContentAttributionConfig()

    def _match(
        self,
        project: Project,
        link: ProjectSocialLink,
        confidence: float,
        reason: AttributionReason,
        keywords: Optional[List[str]] = None,
    ) -> ContentMatch:
        return ContentMatch(
            project_id=project.id,
            social_link_id=link.id,
            confidence=confidence,
            reason=reason,
            matched_keywords=keywords or [],
            should_display=confidence >= self.config.display_threshold,
            requires_manual_review=(
                self.config.save_threshold <= confidence < self.config.display_threshold
            ),
        )

    def _linked_account(
        self, content: RawContent, project: Project
    ) -> Optional[ProjectSocialLink]:
        for link in project.social_links:
            if link.platform == content.platform and link.account_id == content.author_id:
                return link
        return None

    def _check_platform_rules(
        self, content: RawContent, project: Project, link: ProjectSocialLink
    ) -> Optional[ContentMatch]:
        rule = self.config.platform_rules.get(content.platform)

        if rule is not None and rule.auto_attribute_all:
            if content.platform == ContentPlatform.PUMPFUN:
                return self._match(
                    project, link, rule.default_confidence,
                    AttributionReason.PUMPFUN_STREAM, ["pumpfun"],
                )
            if content.platform == ContentPlatform.ZORA and content.content_type in ZORA_STREAM_TYPES:
                if contains_project_name(content.text, project.name):
                    return self._match(
                        project, link, ConfidenceLevel.HIGH,
                        AttributionReason.ZORA_CONTENT_MATCH, [project.name],
                    )
                return self._match(
                    project, link, rule.default_confidence,
                    AttributionReason.ZORA_CREATOR_STREAM, ["zora"],
                )

        if link.attribution_mode == AttributionMode.BROADCAST:
            return self._match(
                project, link, ConfidenceLevel.CERTAIN, AttributionReason.BROADCAST, ["broadcast"]
            )
        return None

    def _check_keywords(
        self, content: RawContent, project: Project, link: ProjectSocialLink
    ) -> Optional[ContentMatch]:
        if not content.text or link.attribution_mode not in KEYWORD_MODES:
            return None

        signals = extract_signals(content.text)

        if self.config.enable_cashtag and project.token_symbol:
            symbol = normalize_symbol(project.token_symbol)
            cashtags = [tag for tag in signals.cashtags if normalize_symbol(tag) == symbol]
            if cashtags:
                return self._match(
                    project, link, ConfidenceLevel.CERTAIN, AttributionReason.CASHTAG, cashtags
                )

        if self.config.enable_hashtag:
            project_tags = {normalize_symbol(tag) for tag in project.hashtags}
            hashtags = [
                tag
                for tag in signals.hashtags
                if normalize_symbol(tag) in project_tags
                or (project.token_symbol and matches_token_symbol(tag, project.token_symbol))
            ]
            if hashtags:
                return self._match(
                    project, link, ConfidenceLevel.VERY_HIGH, AttributionReason.HASHTAG, hashtags
                )

        if self.config.enable_name_mention and contains_project_name(content.text, project.name):
            return self._match(
                project, link, ConfidenceLevel.MEDIUM, AttributionReason.NAME_MENTION, [project.name]
            )
        return None

    def attribute_content(
        self, content: RawContent, projects: List[Project]
    ) -> ContentAttributionResult:
        """Match one content item against every project that links its author"""
        matches: List[ContentMatch] = []

        for project in projects:
            link = self._linked_account(content, project)
            if link is None:
                continue

            match = self._check_platform_rules(content, project, link)
            if match is None:
                match = self._check_keywords(content, project, link)
            if match is None or match.confidence < self.config.save_threshold:
                continue
            matches.append(match)

        if matches:
            logger.debug(
                "Content attributed",
                content_id=content.id,
                platform=content.platform.value,
                projects=[m.project_id for m in matches],
            )
        return ContentAttributionResult(content_id=content.id, matches=matches)

    def batch_attribute(
        self, contents: List[RawContent], projects: List[Project]
    ) -> Dict[str, ContentAttributionResult]:
        """Content id -> result, only for content that matched at least one project"""
        results: Dict[str, ContentAttributionResult] = {}
        for content in contents:
            result = self.attribute_content(content, projects)
            if result.attributed:
                results[content.id] = result
        return results

    @staticmethod
    def to_content_attribution_record(
        content: RawContent, match: ContentMatch, social_account_id: str
    ) -> ContentAttributionRecord:
        return ContentAttributionRecord(
            project_id=match.project_id,
            social_account_id=social_account_id,
            content_id=content.id,
            content_type=content.content_type.value,
            content_url=content.url,
            content_text=content.text,
            posted_at=content.posted_at,
            reason=match.reason,
            matched_keywords=match.matched_keywords,
            confidence=match.confidence,
            engagement=content.engagement,
        )
