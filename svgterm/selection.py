"""Selection of the color theme used for rendering"""
import logging

from svgterm import profile as profiles
from svgterm.detect import detect
from svgterm.preferences import PreferenceStore

logger = logging.getLogger(__name__)


def select_theme(context, term=None, profile=None, store=None):
    """Return the Theme to use for rendering, or None to use the default theme

    :param context: Context of the process
    :param term: Value of the --term option
    :param profile: Value of the --profile option
    :param store: Source of terminal presets (defaults to the preference files
    of the context)

    Raise UsageError if the options are invalid. When the options are used,
    errors reading the requested theme are raised as well; otherwise the
    theme of the detected terminal is used on a best effort basis.
    """
    if store is None:
        store = PreferenceStore(context)

    detected = detect(context)
    scheme = profiles.validate_flags(context, term, profile)
    source = profiles.resolve(context, detected, scheme, profile, store)
    logger.debug('Theme source: {}'.format(source))

    return profiles.to_theme(source, context, store, strict=scheme is not None)
