"""Pure types and schedule evaluation for the job runner."""
