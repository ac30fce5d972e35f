"""Names of build steps and the phases they run in."""

COPY_MANIFEST = 'copy_manifest'
LOCALES = 'locales'
IMAGES = 'images'
SVG = 'svg'
ICONS = 'icons'
HTML = 'html'
CSS = 'css'
CONTENT_SCRIPTS = 'content_scripts'
BACKGROUND_SCRIPT = 'background_script'
DEPENDENCIES = 'dependencies'

# Phases run in order; steps inside a phase run concurrently and never
# share an output path.
PHASES = [
    [COPY_MANIFEST],
    [LOCALES, IMAGES, SVG, ICONS, HTML, CSS, CONTENT_SCRIPTS, BACKGROUND_SCRIPT],
    [DEPENDENCIES],
]
ALL_STEPS = [name for phase in PHASES for name in phase]
