"""Parser configuration - Selectors with fallbacks for resilience"""

# Multi-selector strategy: Primary selector first, then fallbacks
# Format: List of CSS selectors, tried in order until one yields text

DETAIL_SELECTORS = {
    "title": [
        "h1.job-title",
        "h1[class*='title']",
        ".job-detail-title",
        "h1",
    ],
    "company": [
        ".company-name",
        ".employer-name",
        ".job-company",
        "[class*='company-name']",
    ],
    # Inner markup of the first matching container
    "description_html": [
        ".job-description",
        ".job-details",
        ".job-content",
        ".description",
    ],
    "location": [
        ".job-location",
        ".job-detail-location",
        ".location",
    ],
    # time[datetime] is read from its attribute first
    "date_posted": [
        "time[datetime]",
        ".posted-date",
        "[class*='date']",
    ],
    "job_type": [
        ".job-type",
        ".employment-type",
    ],
    "salary": [
        ".job-salary",
        ".compensation",
    ],
}

# Listing page job cards
LISTING_SELECTORS = {
    "job_card": [
        "div.job-card",
        "li.job-item",
        "article[class*='job']",
        "div[class*='job-card']",
    ],
    "card_link": "a[href]",
}

JSONLD_SCRIPT_TYPE = "application/ld+json"

# Detail URL shape: .../jobs/detail/<id>
DETAIL_PATH_PATTERN = r'/jobs/detail/'
SITEMAP_LOC_PATTERN = r'<loc>\s*([^<\s]+)\s*</loc>'
SITEMAP_CHILD_KEYWORD = "job"

# Location split characters: middle dot, bullet, pipe, slash, comma, hyphen
LOCATION_DELIMITERS = r'[·•|/,\-]'
