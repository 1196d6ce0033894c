"""
Source connectors for the research pipeline.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from deep_research.connectors.base import SourceConnector, UpstreamError
from deep_research.connectors.link_aggregator import LinkAggregatorConnector
from deep_research.connectors.search_tools import SearchToolClient
from deep_research.connectors.social import SocialConnector
from deep_research.connectors.tech_news import TechNewsConnector
from deep_research.connectors.video import VideoConnector
from deep_research.connectors.web import GeneralWebConnector
from deep_research.http_client import HttpClient
from deep_research.settings import ResearchSettings

logger = logging.getLogger(__name__)

__all__ = [
    "ConnectorSet",
    "GeneralWebConnector",
    "LinkAggregatorConnector",
    "SearchToolClient",
    "SocialConnector",
    "SourceConnector",
    "TechNewsConnector",
    "UpstreamError",
    "VideoConnector",
    "build_connectors",
]


@dataclass
class ConnectorSet:
    link_aggregator: LinkAggregatorConnector
    tech_news: TechNewsConnector
    video: VideoConnector
    web: GeneralWebConnector
    social: SocialConnector

    def all(self) -> List[SourceConnector]:
        return [self.link_aggregator, self.tech_news, self.video, self.web, self.social]


def build_connectors(settings: ResearchSettings, http: Optional[HttpClient] = None) -> ConnectorSet:
    http = http or HttpClient(user_agent=settings.user_agent)
    search_tool: Optional[SearchToolClient] = None
    if settings.xai_api_key:
        search_tool = SearchToolClient(settings.xai_api_key, settings.search_model, http=http)
    else:
        logger.info("xAI search tools disabled (missing API key); web search uses the HTML fallback.")
    return ConnectorSet(
        link_aggregator=LinkAggregatorConnector(settings, http, search_tool=search_tool),
        tech_news=TechNewsConnector(settings, http),
        video=VideoConnector(settings, http),
        web=GeneralWebConnector(settings, http, search_tool=search_tool),
        social=SocialConnector(settings, http, search_tool=search_tool),
    )
