"""
Question enrichment: work queue, bots and generation.

Modules:
    store: WorkQueueStore, the only shared mutable state between bots
    caller: RateLimitedCaller (pacing, retries, per-attempt timeout)
    clients: httpx transports for the generation service and video checks
    workers: One SpecializedWorker per task type
    harness: WorkerHarness, the claim -> execute -> complete/fail loop
    orchestrator: Gap discovery and channel reclassification
    generator / fanout: Question generation and certification fan-out
    taxonomy: Static channels and certification mapping
    scheduler: APScheduler jobs for in-process triggering

Flow:
    Orchestrator.scan() -> work_queue rows (pending)
    WorkerHarness.run(task_type) -> claim -> worker.execute -> complete | fail
"""
