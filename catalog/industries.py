"""Industry taxonomy used by segment filters and industry search.

Names match the category names the company search function indexes on.
"""

INDUSTRY_TAXONOMY = [
    {
        "canonical_industry": "Software Companies",
        "synonyms": ["software", "saas", "software as a service", "enterprise software", "b2b software"],
        "sector": "Technology",
    },
    {
        "canonical_industry": "Information Technology Companies",
        "synonyms": ["it", "it services", "information technology", "managed services", "tech services"],
        "sector": "Technology",
    },
    {
        "canonical_industry": "Artificial Intelligence Companies",
        "synonyms": ["ai", "machine learning", "ml", "artificial intelligence", "deep learning"],
        "sector": "Technology",
    },
    {
        "canonical_industry": "Cybersecurity Companies",
        "synonyms": ["security", "cyber security", "infosec", "network security"],
        "sector": "Technology",
    },
    {
        "canonical_industry": "Internet Companies",
        "synonyms": ["internet", "web", "online services", "e-commerce platforms"],
        "sector": "Technology",
    },
    {
        "canonical_industry": "Semiconductor Companies",
        "synonyms": ["semiconductors", "chips", "microelectronics", "chip design"],
        "sector": "Technology",
    },
    {
        "canonical_industry": "Telecommunication Companies",
        "synonyms": ["telecom", "telecommunications", "carriers", "wireless", "5g"],
        "sector": "Technology",
    },
    {
        "canonical_industry": "Financial Services Companies",
        "synonyms": ["finance", "financial services", "banking", "fintech", "payments"],
        "sector": "Financial Services",
    },
    {
        "canonical_industry": "Banks",
        "synonyms": ["bank", "retail banking", "commercial bank", "credit union"],
        "sector": "Financial Services",
    },
    {
        "canonical_industry": "Insurance Companies",
        "synonyms": ["insurance", "insurtech", "underwriting", "reinsurance"],
        "sector": "Financial Services",
    },
    {
        "canonical_industry": "Investment Companies",
        "synonyms": ["investment", "asset management", "private equity", "venture capital", "hedge fund"],
        "sector": "Financial Services",
    },
    {
        "canonical_industry": "Health Care Companies",
        "synonyms": ["healthcare", "health care", "hospitals", "clinics", "medical services"],
        "sector": "Health Care",
    },
    {
        "canonical_industry": "Pharmaceutical Companies",
        "synonyms": ["pharma", "pharmaceuticals", "drug development", "life sciences"],
        "sector": "Health Care",
    },
    {
        "canonical_industry": "Biotechnology Companies",
        "synonyms": ["biotech", "biotechnology", "genomics", "bioscience"],
        "sector": "Health Care",
    },
    {
        "canonical_industry": "Medical Device Companies",
        "synonyms": ["medical devices", "medtech", "diagnostics", "medical equipment"],
        "sector": "Health Care",
    },
    {
        "canonical_industry": "Manufacturing Companies",
        "synonyms": ["manufacturing", "industrial", "factory", "production"],
        "sector": "Industrials",
    },
    {
        "canonical_industry": "Automotive Companies",
        "synonyms": ["automotive", "cars", "vehicles", "auto parts", "electric vehicles", "ev"],
        "sector": "Industrials",
    },
    {
        "canonical_industry": "Aerospace Companies",
        "synonyms": ["aerospace", "aviation", "defense", "space"],
        "sector": "Industrials",
    },
    {
        "canonical_industry": "Construction Companies",
        "synonyms": ["construction", "building", "contractors", "civil engineering"],
        "sector": "Industrials",
    },
    {
        "canonical_industry": "Logistics Companies",
        "synonyms": ["logistics", "shipping", "freight", "supply chain", "transportation"],
        "sector": "Industrials",
    },
    {
        "canonical_industry": "Energy Companies",
        "synonyms": ["energy", "oil and gas", "utilities", "power"],
        "sector": "Energy",
    },
    {
        "canonical_industry": "Renewable Energy Companies",
        "synonyms": ["renewables", "solar", "wind", "clean energy", "cleantech"],
        "sector": "Energy",
    },
    {
        "canonical_industry": "Retail Companies",
        "synonyms": ["retail", "stores", "ecommerce", "e-commerce", "consumer retail"],
        "sector": "Consumer",
    },
    {
        "canonical_industry": "Consumer Goods Companies",
        "synonyms": ["consumer goods", "cpg", "fmcg", "consumer products"],
        "sector": "Consumer",
    },
    {
        "canonical_industry": "Food and Beverage Companies",
        "synonyms": ["food", "beverage", "food and drink", "restaurants", "f&b"],
        "sector": "Consumer",
    },
    {
        "canonical_industry": "Hospitality Companies",
        "synonyms": ["hospitality", "hotels", "travel", "tourism", "leisure"],
        "sector": "Consumer",
    },
    {
        "canonical_industry": "Media Companies",
        "synonyms": ["media", "publishing", "broadcasting", "entertainment", "news"],
        "sector": "Communication Services",
    },
    {
        "canonical_industry": "Advertising Companies",
        "synonyms": ["advertising", "marketing agency", "adtech", "digital marketing"],
        "sector": "Communication Services",
    },
    {
        "canonical_industry": "Education Companies",
        "synonyms": ["education", "edtech", "e-learning", "schools", "training"],
        "sector": "Education",
    },
    {
        "canonical_industry": "Real Estate Companies",
        "synonyms": ["real estate", "property", "proptech", "property management"],
        "sector": "Real Estate",
    },
    {
        "canonical_industry": "Consulting Companies",
        "synonyms": ["consulting", "management consulting", "advisory", "professional services"],
        "sector": "Professional Services",
    },
    {
        "canonical_industry": "Legal Services Companies",
        "synonyms": ["legal", "law firm", "legal services", "legaltech"],
        "sector": "Professional Services",
    },
    {
        "canonical_industry": "Staffing Companies",
        "synonyms": ["staffing", "recruiting", "recruitment", "hr services", "talent acquisition"],
        "sector": "Professional Services",
    },
    {
        "canonical_industry": "Agriculture Companies",
        "synonyms": ["agriculture", "farming", "agtech", "agribusiness"],
        "sector": "Materials",
    },
    {
        "canonical_industry": "Chemical Companies",
        "synonyms": ["chemicals", "specialty chemicals", "petrochemicals"],
        "sector": "Materials",
    },
    {
        "canonical_industry": "Nonprofit Organizations",
        "synonyms": ["nonprofit", "non-profit", "ngo", "charity", "foundation"],
        "sector": "Public Sector",
    },
    {
        "canonical_industry": "Government Agencies",
        "synonyms": ["government", "public sector", "agency", "municipal"],
        "sector": "Public Sector",
    },
]
