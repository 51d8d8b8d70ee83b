"""Pure domain layer: clock, money rules, lifecycles and DTOs."""
