"""
fincontrol_batch -- Scheduled Job Runner.

Runs the bill and receivable batch jobs on two daily cron triggers:
overdue marking first, automatic settlement second.  Each task runs in its
own session; the kernel services commit per record, so one bad record or
one failing task never stops the rest.

Architecture:
    fincontrol_batch/ is a top-level package.  Nothing in fincontrol_kernel
    imports from it.

Entry points:
    BatchOrchestrator (orchestrator.py), DailyJobScheduler, JobRunner.
"""
