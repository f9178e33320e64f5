#!/usr/bin/env python3
"""
Sources with a known chart URL and no markup extraction yet.

Each one checks that its chart page is reachable and then fails with
`not_implemented`.
"""

from core.sources.base import DeclaredEndpointSource, SourceMetadata


class BugsSource(DeclaredEndpointSource):
    source_id = 'bugs'
    CHART_URL = 'https://music.bugs.co.kr/chart'

    def get_metadata(self) -> SourceMetadata:
        return SourceMetadata(self.source_id, 'Bugs', 'https://music.bugs.co.kr')


class VibeSource(DeclaredEndpointSource):
    source_id = 'vibe'
    CHART_URL = 'https://vibe.naver.com/chart'

    def get_metadata(self) -> SourceMetadata:
        return SourceMetadata(self.source_id, 'VIBE', 'https://vibe.naver.com')


class FloSource(DeclaredEndpointSource):
    source_id = 'flo'
    CHART_URL = 'https://www.music-flo.com/detail/chart/HOT'

    def get_metadata(self) -> SourceMetadata:
        return SourceMetadata(self.source_id, 'FLO', 'https://www.music-flo.com')
