"""
Configuration settings for the ICP Signal Monitor
"""

import os

# =============================================================================
# LLM CONFIGURATION
# =============================================================================

LLM_CONFIG = {
    "provider": os.getenv("LLM_PROVIDER", "openrouter"),  # openrouter, openai, anthropic
    "model": os.getenv("LLM_MODEL", "anthropic/claude-sonnet-4"),
    "api_key": os.getenv("OPENROUTER_API_KEY", "") or os.getenv("LLM_API_KEY", ""),
    "base_url": os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1"),
    "max_tokens": 512,
    "temperature": float(os.getenv("LLM_TEMPERATURE", "0.2")),
    # OpenRouter specific headers
    "site_url": os.getenv("OPENROUTER_SITE_URL", "http://localhost:8000"),
    "app_name": os.getenv("OPENROUTER_APP_NAME", "ICP Signal Monitor"),
}

# =============================================================================
# PIPELINE CONFIGURATION
# =============================================================================

PIPELINE_CONFIG = {
    "output_dir": os.getenv("OUTPUT_DIR", "./output"),
    "memory_dir": os.getenv("MEMORY_DIR", "./data/memory"),
    "icp_config_path": os.getenv("ICP_CONFIG_PATH", "./config/icp.json"),
    "signal_confidence_threshold": float(os.getenv("SIGNAL_CONFIDENCE_THRESHOLD", "0.6")),
    "max_events_per_run": int(os.getenv("MAX_EVENTS_PER_RUN", "500")),
    "classifier_concurrency": int(os.getenv("CLASSIFIER_CONCURRENCY", "5")),
    "enable_memory": os.getenv("ENABLE_MEMORY", "true").lower() != "false",
    "cron_schedule": os.getenv("CRON_SCHEDULE", "0 */4 * * *"),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "log_file": os.getenv("LOG_FILE", "output/pipeline.log"),
    "events_file": os.getenv("EVENTS_FILE", ""),
}

PIPELINE_VERSION = "1.0.0"

# =============================================================================
# BUYING STAGE INFERENCE
# =============================================================================

# Checked in order, first match wins
BUYING_STAGE_PATTERNS = [
    ("evaluation", r"rfp|rfq|rfi|vendor selection|shortlist|evaluating vendors"),
    ("implementation", r"implementing|rolling out|go-live|deployment|migrating to"),
    ("decision", r"selected|chose|signed|contracted with|partnered with"),
    ("research", r"looking for|recommend|anyone using|what .* do you use"),
]

# =============================================================================
# ICP CONTENT RELEVANCE TERMS
# =============================================================================

HIGH_SIGNAL_TERMS = [
    "rfp",
    "rfq",
    "rfi",
    "vendor selection",
    "platform evaluation",
    "system implementation",
    "digital transformation",
    "re-platform",
    "overhaul",
    "modernize",
    "modernise",
    "looking for solutions",
    "open to solutions",
    "kicking off",
    "new system",
    "replacing",
]

MEDIUM_SIGNAL_TERMS = [
    "supply chain",
    "procurement",
    "logistics",
    "warehouse",
    "inventory",
    "sourcing",
    "supplier",
    "demand planning",
    "transportation",
    "distribution",
    "fulfillment",
    "tms",
    "wms",
    "s2p",
    "source-to-pay",
    "erp",
    "control tower",
]

HIGH_SIGNAL_WEIGHT = 0.15
MEDIUM_SIGNAL_WEIGHT = 0.05

# =============================================================================
# FALLBACK CLASSIFIER KEYWORDS
# =============================================================================

# Order matters: ties go to the category listed first
CATEGORY_KEYWORDS = {
    "planning_visibility": [
        "demand planning",
        "supply planning",
        "control tower",
        "visibility",
        "s&op",
    ],
    "inventory_optimization": [
        "inventory",
        "stockout",
        "safety stock",
        "replenishment",
        "demand sensing",
    ],
    "procurement_sourcing": [
        "sourcing",
        "e-sourcing",
        "procurement",
        "category management",
        "spend management",
    ],
    "tms_logistics": [
        "tms",
        "transportation management",
        "freight",
        "carrier",
        "route optimization",
        "multi-carrier",
    ],
    "wms_warehouse": [
        "wms",
        "warehouse management",
        "fulfillment",
        "pick and pack",
        "dc operations",
    ],
    "s2p_transformation": [
        "s2p",
        "source-to-pay",
        "procure-to-pay",
        "p2p",
        "contract management",
        "ap automation",
    ],
    "erp_migration": [
        "erp",
        "sap migration",
        "oracle cloud",
        "system migration",
        "re-platform",
    ],
    "supplier_risk": [
        "supplier risk",
        "srm",
        "supplier qualification",
        "supplier compliance",
        "vendor risk",
    ],
    "network_design": [
        "network design",
        "distribution network",
        "dc location",
        "supply chain network",
    ],
    "analytics_reporting": [
        "analytics",
        "dashboard",
        "reporting",
        "data platform",
        "snowflake",
        "databricks",
    ],
    "general_operations": [
        "operations",
        "efficiency",
        "optimization",
        "process improvement",
    ],
}

FALLBACK_CONFIDENCE_PER_MATCH = 0.2
FALLBACK_MAX_CONFIDENCE = 0.8
FALLBACK_SUGGESTED_ACTIONS = [
    "Review content manually",
    "Research company further",
]

# =============================================================================
# CLASSIFIER INSTRUCTIONS
# =============================================================================

CLASSIFIER_SYSTEM_PROMPT = """You are a B2B buying-signal analyst specializing in procurement, supply chain, and logistics technology.

Given a piece of online content (post, tweet, job listing, release note, etc.), determine:
1. Whether it represents a genuine buying signal for supply-chain / procurement / logistics solutions
2. The category of signal
3. Signal strength and buying stage
4. Key reasoning and suggested follow-up actions

Respond ONLY with valid JSON matching this schema:
{
  "isSignal": boolean,
  "confidence": number (0-1),
  "category": "planning_visibility" | "inventory_optimization" | "procurement_sourcing" | "tms_logistics" | "wms_warehouse" | "s2p_transformation" | "erp_migration" | "supplier_risk" | "network_design" | "analytics_reporting" | "general_operations",
  "strength": "strong" | "moderate" | "weak",
  "buyingStage": "awareness" | "research" | "evaluation" | "decision" | "implementation",
  "reasoning": "1-2 sentence explanation",
  "keywords": ["list", "of", "relevant", "keywords"],
  "suggestedActions": ["actionable next steps for sales/marketing team"]
}

Category definitions:
- planning_visibility: demand planning, supply planning, control towers, visibility platforms
- inventory_optimization: inventory management, safety stock, demand sensing, replenishment
- procurement_sourcing: sourcing, e-procurement, category management, strategic sourcing
- tms_logistics: transportation management, freight, carrier management, route optimization
- wms_warehouse: warehouse management, fulfillment, pick/pack/ship, DC operations
- s2p_transformation: source-to-pay, procure-to-pay, AP automation, contract management
- erp_migration: ERP changes, system migration, core platform changes
- supplier_risk: supplier risk management, SRM, supplier qualification, compliance
- network_design: supply chain network design, DC location, distribution strategy
- analytics_reporting: supply chain analytics, reporting, dashboards, data platforms
- general_operations: general ops improvement that doesn't fit above categories

Signal strength:
- strong: explicit mention of buying, evaluating, implementing, or RFP/RFQ
- moderate: clear pain point or interest in solutions, but no active buying language
- weak: general discussion relevant to domain but no clear buying intent

Buying stage:
- awareness: recognizing a problem exists
- research: actively looking into solutions or approaches
- evaluation: comparing vendors or running RFP/RFQ
- decision: selecting a vendor or finalizing a deal
- implementation: deploying or rolling out a solution"""
