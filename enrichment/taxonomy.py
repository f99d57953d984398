"""
Static channel taxonomy and certification mapping.

CHANNELS: channel id -> valid sub-channels (the orchestrator's
reclassification pass checks questions against it).

CERTIFICATION_CHANNELS: certification id -> channels it covers. The
fan-out generator reads the inverse: channel -> related certification tracks.
"""

from typing import Dict, List, Tuple

CHANNELS: Dict[str, Tuple[str, ...]] = {
    "system-design": ("infrastructure", "distributed-systems", "api-design", "caching", "load-balancing", "message-queues"),
    "algorithms": ("data-structures", "sorting", "dynamic-programming", "graphs", "trees"),
    "frontend": ("react", "javascript", "css", "performance", "web-apis"),
    "backend": ("apis", "microservices", "caching", "authentication", "server-architecture"),
    "database": ("sql", "nosql", "indexing", "transactions", "query-optimization"),
    "python": ("fundamentals", "async", "libraries", "performance", "testing"),
    "networking": ("tcp-ip", "dns", "http", "load-balancing", "security"),
    "operating-systems": ("processes", "memory", "scheduling", "file-systems", "concurrency"),
    "linux": ("shell", "permissions", "processes", "networking", "troubleshooting"),
    "unix": ("shell", "processes", "file-systems", "tools"),
    "devops": ("cicd", "docker", "automation", "gitops"),
    "sre": ("observability", "reliability", "incident-management", "chaos-engineering", "capacity-planning"),
    "kubernetes": ("pods", "services", "deployments", "helm", "operators"),
    "aws": ("compute", "storage", "serverless", "database", "networking"),
    "terraform": ("basics", "modules", "state-management", "best-practices"),
    "data-engineering": ("etl", "data-warehousing", "streaming", "data-modeling"),
    "machine-learning": ("algorithms", "model-training", "deployment", "deep-learning", "evaluation"),
    "generative-ai": ("llm-fundamentals", "fine-tuning", "rag", "agents", "evaluation"),
    "prompt-engineering": ("techniques", "optimization", "safety", "structured-output"),
    "llm-ops": ("deployment", "optimization", "monitoring", "infrastructure"),
    "computer-vision": ("image-classification", "object-detection", "segmentation", "multimodal"),
    "nlp": ("text-processing", "embeddings", "sequence-models", "transformers"),
    "security": ("application-security", "owasp", "encryption", "authentication"),
    "ios": ("swift", "uikit", "swiftui", "architecture"),
    "android": ("kotlin", "jetpack-compose", "architecture", "lifecycle"),
    "react-native": ("core-concepts", "native-modules", "performance", "navigation"),
    "testing": ("unit-testing", "integration-testing", "tdd", "test-strategies"),
    "e2e-testing": ("playwright", "cypress", "selenium", "best-practices"),
    "api-testing": ("rest-testing", "contract-testing", "graphql-testing", "mocking"),
    "performance-testing": ("load-testing", "profiling", "benchmarking", "stress-testing"),
    "engineering-management": ("team-leadership", "hiring", "project-management", "culture"),
    "behavioral": ("star-method", "leadership-principles", "soft-skills", "conflict-resolution"),
}

# Order matters: it is the order fan-out generates related tracks in
CERTIFICATION_CHANNELS: Dict[str, Tuple[str, ...]] = {
    "aws-saa": ("aws", "system-design", "networking", "security"),
    "aws-sap": ("aws", "system-design", "security", "networking"),
    "aws-dva": ("aws", "backend", "devops", "database"),
    "aws-sysops": ("aws", "devops", "sre", "linux"),
    "cka": ("kubernetes", "devops", "linux", "networking"),
    "ckad": ("kubernetes", "backend", "devops", "docker"),
    "cks": ("kubernetes", "security", "devops", "networking"),
    "terraform-associate": ("terraform", "devops", "aws"),
    "gcp-ace": ("system-design", "devops", "kubernetes", "networking"),
    "gcp-pca": ("system-design", "devops", "security", "database"),
    "az-900": ("system-design", "networking", "security"),
    "az-104": ("devops", "networking", "security", "linux"),
    "az-305": ("system-design", "security", "database", "networking"),
    "comptia-security-plus": ("security", "networking", "linux"),
    "aws-security": ("aws", "security", "networking"),
    "aws-data-engineer": ("aws", "data-engineering", "database"),
    "aws-ml-specialty": ("machine-learning", "aws", "data-engineering", "python"),
    "linux-plus": ("linux", "operating-systems", "networking", "security"),
    "rhcsa": ("linux", "operating-systems", "networking"),
    "psd": ("testing", "devops", "backend", "behavioral"),
    "aws-database": ("database", "aws", "system-design"),
    "ccna": ("networking", "security", "linux"),
    "aws-networking": ("aws", "networking", "security"),
}


# Accepted for every channel
GENERAL_SUB_CHANNEL = "general"


def certifications_for_channel(channel: str) -> List[str]:
    """Certification ids whose exam covers `channel`, in declaration order"""
    return [cert for cert, channels in CERTIFICATION_CHANNELS.items() if channel in channels]


def is_valid_classification(channel: str, sub_channel: str) -> bool:
    if channel not in CHANNELS:
        return False
    return sub_channel == GENERAL_SUB_CHANNEL or sub_channel in CHANNELS[channel]


def taxonomy_prompt_block() -> str:
    """Channel list rendered for the reclassification prompt"""
    return "\n".join(f"- {channel}: {', '.join(subs)}" for channel, subs in CHANNELS.items())
