"""
Model entities, the entity registry and whole-model validation.

Kept free of imports so that submodules can be loaded in any order; the
package root re-exports the public names.
"""
