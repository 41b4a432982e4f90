"""Score aggregator: builds the final SiteAnalysis from the six category reports.

Overall score is the plain mean of the six category scores. Every issue
yields exactly one recommendation; recommendations are ordered by priority
(high, medium, low) and keep their encounter order within a priority.
"""

import math
from typing import Dict, List, Mapping

from .models import (
    CATEGORIES,
    AnalysisMetadata,
    Category,
    CategoryReport,
    CategoryStatus,
    Effort,
    Issue,
    Recommendation,
    Severity,
    SiteAnalysis,
    utcnow,
)

PRIORITY_WEIGHT = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}

EFFORT_BY_SEVERITY = {
    Severity.HIGH: Effort.MEDIUM,
    Severity.MEDIUM: Effort.EASY,
    Severity.LOW: Effort.EASY,
}

IMPACT_BY_SEVERITY = {
    Severity.HIGH: "High impact on SEO rankings and user experience. Should be addressed immediately.",
    Severity.MEDIUM: "Moderate impact on SEO performance. Recommended to fix within a few weeks.",
    Severity.LOW: "Minor impact on SEO. Can be addressed as time permits for optimization.",
}

ERROR_EXCERPT_LENGTH = 50


def failure_report(category: Category, message: str, base_url: str) -> CategoryReport:
    """Zero-score placeholder for a category whose analysis did not finish."""
    label = category.value
    excerpt = message[:ERROR_EXCERPT_LENGTH] + ("..." if len(message) > ERROR_EXCERPT_LENGTH else "")
    return CategoryReport(
        score=0,
        status=CategoryStatus.POOR,
        issues=[Issue(
            id=f"{label}-error",
            severity=Severity.HIGH,
            title=f"{label.capitalize()} analysis failed",
            description=f"Unable to complete {label} analysis: {message}",
            recommendation="Please check the URL accessibility and try again",
            affected_pages=[base_url],
        )],
        positives=[],
        metrics={"Status": "Analysis Failed", "Error": excerpt},
    )


def overall_score(reports: Mapping[Category, CategoryReport]) -> int:
    """Mean of the category scores, rounded half up."""
    if not reports:
        return 0
    mean = sum(report.score for report in reports.values()) / len(reports)
    return int(math.floor(mean + 0.5))


def recommendation_for(issue: Issue) -> Recommendation:
    return Recommendation(
        id=f"rec-{issue.id}",
        category=issue.id.split("-")[0],
        priority=issue.severity,
        title=issue.title,
        description=issue.description,
        impact=IMPACT_BY_SEVERITY[issue.severity],
        effort=EFFORT_BY_SEVERITY[issue.severity],
        steps=[issue.recommendation],
    )


def build_recommendations(reports: Mapping[Category, CategoryReport]) -> List[Recommendation]:
    """One recommendation per issue, stable-sorted by descending priority weight."""
    recommendations = [
        recommendation_for(issue)
        for category in CATEGORIES
        for issue in reports[category].issues
    ]
    # sorted() is stable, so equal priorities keep encounter order
    return sorted(recommendations, key=lambda rec: -PRIORITY_WEIGHT[rec.priority])


def build_site_analysis(
    url: str,
    results: Mapping[Category, CategoryReport],
    crawled_pages: int,
    base_url: str,
) -> SiteAnalysis:
    """Aggregate category reports into the final analysis."""
    categories: Dict[Category, CategoryReport] = {}
    for category in CATEGORIES:
        report = results.get(category)
        if report is None:
            report = failure_report(category, "Analysis did not complete", base_url)
        categories[category] = report

    return SiteAnalysis(
        url=url,
        overall_score=overall_score(categories),
        categories=categories,
        recommendations=build_recommendations(categories),
        metadata=AnalysisMetadata(
            crawled_pages=max(1, crawled_pages),
            total_links=0,
            analysis_duration=0,
            last_modified=utcnow(),
        ),
    )
