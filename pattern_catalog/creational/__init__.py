"""Creational patterns: Singleton, Factory Method, Abstract Factory, Builder, Prototype."""
