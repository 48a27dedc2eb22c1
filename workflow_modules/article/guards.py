"""
Guards available to the YAML article blueprint (``article.yaml``).
"""

from workflow_config import GuardRegistry

ARTICLE_GUARDS = GuardRegistry()


@ARTICLE_GUARDS.register("has_content")
def has_content(article, context):
    return bool(article.body and article.body.strip())


@ARTICLE_GUARDS.register("not_retracted")
def not_retracted(article, context):
    return not article.retracted
