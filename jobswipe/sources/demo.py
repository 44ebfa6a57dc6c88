"""Built-in sample feed for demo mode and for running without network access."""
from __future__ import annotations

from jobswipe.log import get_logger
from jobswipe.models import Candidate, Filters, Page
from jobswipe.sources.base import JobSource

log = get_logger(__name__)

SAMPLE_POSTINGS: list[Candidate] = [
    Candidate(
        id="demo-1",
        title="Product Marketing Manager, Marketplace",
        company="05.ru",
        salary_text="150–200k ₽",
        description="Funnel optimization, sales analytics, GA4, CRM.",
        tags=("Marketing", "Analytics", "Growth"),
        location="Moscow",
        employment_type="full-time",
    ),
    Candidate(
        id="demo-2",
        title="Data Analyst, Retail & eCommerce",
        company="X5 Tech",
        salary_text="200–260k ₽",
        description="SQL, Python, ClickHouse, building data marts.",
        tags=("Data", "SQL", "Python"),
        location="Moscow",
        employment_type="hybrid",
    ),
    Candidate(
        id="demo-3",
        title="Product Manager, Digital Banking",
        company="T-Bank",
        salary_text="230–300k ₽",
        description="Mobile features, A/B tests, customer journey maps.",
        tags=("Product", "Fintech", "Mobile"),
        location="Moscow",
        employment_type="hybrid",
    ),
    Candidate(
        id="demo-4",
        title="Frontend Developer, React Core",
        company="Yandex",
        salary_text="250–350k ₽",
        description="Complex interfaces, performance work, frontend architecture. React, TypeScript.",
        tags=("Frontend", "React", "TypeScript"),
        location="Moscow",
        employment_type="full-time",
    ),
    Candidate(
        id="demo-5",
        title="UX/UI Designer, Design System",
        company="Avito",
        salary_text="180–240k ₽",
        description="Growing the design system, building components, interface consistency.",
        tags=("Design", "Figma", "UI/UX"),
        location="Saint Petersburg",
        employment_type="hybrid",
    ),
    Candidate(
        id="demo-6",
        title="Backend Engineer, High Load Systems",
        company="Ozon",
        salary_text="280–380k ₽",
        description="Go microservices, Kubernetes, performance of high-load systems.",
        tags=("Backend", "Go", "Microservices"),
        location="Moscow",
        employment_type="full-time",
    ),
    Candidate(
        id="demo-7",
        title="ML Engineer, Recommender Systems",
        company="VK",
        salary_text="300–400k ₽",
        description="Recommender systems, big data, A/B testing ML models in production.",
        tags=("ML", "Python", "Recommendations"),
        location="Saint Petersburg",
        employment_type="full-time",
    ),
    Candidate(
        id="demo-8",
        title="DevOps Engineer, Cloud Infrastructure",
        company="Yandex Cloud",
        salary_text="220–300k ₽",
        description="Cloud infrastructure, CI/CD automation, monitoring and fault tolerance.",
        tags=("DevOps", "AWS", "Kubernetes"),
        location="Remote",
        employment_type="remote",
    ),
    Candidate(
        id="demo-9",
        title="QA Engineer, Automation",
        company="Wildberries",
        salary_text="200–280k ₽",
        description="Test automation, Selenium, Python, CI/CD integration.",
        tags=("QA", "Automation", "Python"),
        location="Remote",
        employment_type="remote",
    ),
    Candidate(
        id="demo-10",
        title="Data Engineer, Retail Analytics",
        company="Magnit Tech",
        salary_text="220–300k ₽",
        description="Data marts, ETL, ClickHouse, Airflow, storage optimization.",
        tags=("Data", "ETL", "Analytics"),
        location="Krasnodar",
        employment_type="full-time",
    ),
    Candidate(
        id="demo-11",
        title="Performance Marketing Manager",
        company="Ozon",
        salary_text="180–240k ₽",
        description="Ad campaigns, CPA optimization, channel analytics, creatives.",
        tags=("Marketing", "Performance", "Analytics"),
        location="Remote",
        employment_type="remote",
    ),
    Candidate(
        id="demo-12",
        title="Product Researcher",
        company="Cian",
        salary_text="180–240k ₽",
        description="User research, customer journey maps, in-depth interviews, insights.",
        tags=("Research", "UX", "Product"),
        location="Moscow",
        employment_type="full-time",
    ),
]


def _matches(c: Candidate, filters: Filters) -> bool:
    if filters.keyword:
        needle = filters.keyword.lower()
        haystack = " ".join((c.title, c.company, c.description, *c.tags)).lower()
        if needle not in haystack:
            return False
    if filters.schedule and filters.schedule != "all":
        if filters.schedule == "remote" and c.employment_type != "remote":
            return False
    return True


class DemoSource(JobSource):
    def __init__(self, postings: list[Candidate] | None = None, per_page: int = 5) -> None:
        self.postings = list(postings) if postings is not None else list(SAMPLE_POSTINGS)
        self.per_page = per_page

    def fetch_page(self, filters: Filters, page: int) -> Page:
        matching = [c for c in self.postings if _matches(c, filters)]
        start = page * self.per_page
        items = matching[start:start + self.per_page]
        log.debug("DemoSource page %d: %d of %d postings", page, len(items), len(matching))
        return Page(
            items=items,
            has_more=start + self.per_page < len(matching),
            total=len(matching),
        )
