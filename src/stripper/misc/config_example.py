from stripper.rules import GLOBAL

'''
Extra junk parameters to strip, on top of the built-in rules.

Keys are host patterns ('example.com' also covers 'www.example.com' and 'blog.example.com'),
or GLOBAL for parameters that should be stripped everywhere.
Set RULES instead if you want to replace the built-in rules altogether.
'''
EXTRA_RULES = {
    GLOBAL: [
        'fbclid',
        'gclid',
    ],
    'medium.com': [
        'source',
    ],
}
