"""Built-in template catalog.

Test templates receive a context with ``imports``, ``suite_name``,
``test_name``, ``setup``, ``teardown``, ``test_body`` and ``typescript``.
Page object, config and helper templates document their own keys through
their placeholders.
"""

from .models import CodeTemplate, TemplateCategory, TemplatePlaceholder

# ================================
# Shared placeholders
# ================================

SUITE_NAME = TemplatePlaceholder(
    key="suite_name",
    name="Test Suite Name",
    description="Name of the test suite",
    required=True,
)
TEST_NAME = TemplatePlaceholder(
    key="test_name",
    name="Test Name",
    description="Name of the test case",
    required=True,
)
TEST_BODY = TemplatePlaceholder(
    key="test_body",
    name="Test Body",
    description="Main test logic",
    required=True,
)
IMPORTS = TemplatePlaceholder(
    key="imports",
    name="Imports",
    description="Import statements for the file",
)
TIMEOUT = TemplatePlaceholder(
    key="timeout",
    name="Timeout",
    description="Timeout in milliseconds",
    type="number",
    default_value=30000,
)
CLASS_NAME = TemplatePlaceholder(
    key="class_name",
    name="Class Name",
    description="Name of the generated class",
    required=True,
    validation=r"^[A-Za-z_][A-Za-z0-9_]*$",
)

# ================================
# Playwright
# ================================

PLAYWRIGHT_TEST = """{{imports}}

test.describe('{{suite_name}}', () => {
{{#if setup}}
  test.beforeEach(async ({ page }) => {
    {{setup}}
  });

{{/if}}
  test('{{test_name}}', async ({ page }) => {
    {{test_body}}
  });
{{#if teardown}}

  test.afterEach(async ({ page }) => {
    {{teardown}}
  });
{{/if}}
});
"""

PLAYWRIGHT_PYTHON_TEST = '''{{imports}}


{{#if setup}}
@pytest.fixture(autouse=True)
def prepare_page(page: Page):
    {{setup}}
    yield
{{#if teardown}}
    {{teardown}}
{{/if}}


{{/if}}
def test_{{function_name}}(page: Page):
    """{{test_name}}"""
    {{test_body}}
'''

PLAYWRIGHT_CONFIG = """{{imports}}

{{#if typescript}}
export default defineConfig({
{{else}}
module.exports = defineConfig({
{{/if}}
  testDir: '{{test_dir}}',
  timeout: {{timeout}},
  use: {
{{#if base_url}}
    baseURL: '{{base_url}}',
{{/if}}
    headless: {{headless}},
    viewport: { width: {{viewport.width}}, height: {{viewport.height}} },
    actionTimeout: {{action_timeout}},
  },
});
"""

# ================================
# Cypress
# ================================

CYPRESS_TEST = """{{#if imports}}
{{imports}}

{{/if}}
describe('{{suite_name}}', () => {
{{#if setup}}
  beforeEach(() => {
    {{setup}}
  });

{{/if}}
  it('{{test_name}}', () => {
    {{test_body}}
  });
{{#if teardown}}

  afterEach(() => {
    {{teardown}}
  });
{{/if}}
});
"""

CYPRESS_CONFIG = """{{imports}}

{{#if typescript}}
export default defineConfig({
{{else}}
module.exports = defineConfig({
{{/if}}
  e2e: {
{{#if base_url}}
    baseUrl: '{{base_url}}',
{{/if}}
    specPattern: 'cypress/e2e/**/*.cy.{{extension}}',
    viewportWidth: {{viewport.width}},
    viewportHeight: {{viewport.height}},
    defaultCommandTimeout: {{timeout}},
  },
});
"""

CYPRESS_COMMANDS = """{{#if typescript}}
/// <reference types="cypress" />

declare global {
  namespace Cypress {
    interface Chainable {
      getBySelector(selector: string): Chainable<JQuery<HTMLElement>>;
      fillField(selector: string, value: string): Chainable<JQuery<HTMLElement>>;
    }
  }
}

{{/if}}
Cypress.Commands.add('getBySelector', (selector{{#if typescript}}: string{{/if}}) => {
  return cy.get(selector, { timeout: {{timeout}} });
});

Cypress.Commands.add('fillField', (selector{{#if typescript}}: string{{/if}}, value{{#if typescript}}: string{{/if}}) => {
  return cy.getBySelector(selector).clear().type(value);
});
{{#if typescript}}

export {};
{{/if}}
"""

# ================================
# Selenium
# ================================

SELENIUM_TEST = '''{{imports}}


class {{class_name}}(unittest.TestCase):
    """{{suite_name}}"""

    def setUp(self):
        {{setup}}

    def test_{{function_name}}(self):
        """{{test_name}}"""
        driver = self.driver
        {{test_body}}

    def tearDown(self):
        {{teardown}}


if __name__ == "__main__":
    unittest.main()
'''

# ================================
# Puppeteer
# ================================

PUPPETEER_TEST = """{{imports}}

describe('{{suite_name}}', () => {
  let browser{{#if typescript}}: Browser{{/if}};
  let page{{#if typescript}}: Page{{/if}};

  beforeAll(async () => {
    {{setup}}
  });

  afterAll(async () => {
    {{teardown}}
  });

  test('{{test_name}}', async () => {
    {{test_body}}
  }, {{timeout}});
});
"""

JEST_CONFIG = """module.exports = {
  preset: 'jest-puppeteer',
  testTimeout: {{timeout}},
  testMatch: ['**/*.spec.{{extension}}'],
{{#if typescript}}
  transform: { '^.+\\\\.ts$': 'ts-jest' },
{{/if}}
};
"""

PUPPETEER_UTILS = """{{#if typescript}}
import type { Page } from 'puppeteer';

{{/if}}
/**
 * Helpers shared by generated Puppeteer tests.
 */
async function waitForSelectorWithRetry(page{{#if typescript}}: Page{{/if}}, selector{{#if typescript}}: string{{/if}}, retries = {{retries}}) {
  for (let attempt = 1; attempt <= retries; attempt++) {
    try {
      return await page.waitForSelector(selector, { timeout: {{timeout}} });
    } catch (error) {
      if (attempt === retries) throw error;
    }
  }
}

async function fillField(page{{#if typescript}}: Page{{/if}}, selector{{#if typescript}}: string{{/if}}, value{{#if typescript}}: string{{/if}}) {
  await waitForSelectorWithRetry(page, selector);
  await page.locator(selector).fill(value);
}

{{#if typescript}}
export { waitForSelectorWithRetry, fillField };
{{else}}
module.exports = { waitForSelectorWithRetry, fillField };
{{/if}}
"""

# ================================
# Shared page objects and config
# ================================

JS_PAGE_OBJECT = """{{#if imports}}
{{imports}}

{{/if}}
/**
 * Page object for {{url}}
 */
export class {{class_name}} {
{{#if handle}}
{{#if typescript}}
  readonly {{handle}}: {{handle_type}};

{{/if}}
  constructor({{handle}}{{#if typescript}}: {{handle_type}}{{/if}}) {
    this.{{handle}} = {{handle}};
  }

{{/if}}
  {{visit_method}}
{{#each methods as method}}

  {{method}}
{{/each}}
}
"""

PYTHON_PAGE_OBJECT = '''{{#if imports}}
{{imports}}


{{/if}}
class {{class_name}}:
    """Page object for {{url}}."""

    def __init__(self, {{handle}}):
        self.{{handle}} = {{handle}}

    {{visit_method}}
{{#each methods as method}}

    {{method}}
{{/each}}
'''

PYTEST_INI = """[pytest]
python_files = test_*.py
{{#if addopts}}
addopts = {{addopts}}
{{/if}}
"""

TEST_DATA_HELPER = """export interface {{interface_name}} {
{{#each fields as field}}
  {{field.name}}: {{field.type}};
{{/each}}
}

export class {{class_name}} {
  static create(overrides: Partial<{{interface_name}}> = {}): {{interface_name}} {
    return {
{{#each fields as field}}
      {{field.name}}: {{field.example}},
{{/each}}
      ...overrides,
    };
  }
}
"""

PAGE_OBJECT_PLACEHOLDERS = [
    CLASS_NAME,
    TemplatePlaceholder(key="url", name="Page URL", description="URL the page object opens", required=True),
    TemplatePlaceholder(key="visit_method", name="Visit Method", description="Method that opens the page", required=True),
    TemplatePlaceholder(key="methods", name="Methods", description="One method per recorded action", type="array"),
]


def _test_template(template_id: str, name: str, framework: str, language: str, source: str,
                   dependencies: list[str], extra: list[TemplatePlaceholder] = ()) -> CodeTemplate:
    return CodeTemplate(
        id=template_id,
        name=name,
        description=f"{name} generated from a recording",
        framework=framework,
        language=language,
        category=TemplateCategory.TEST,
        template=source,
        placeholders=[IMPORTS, SUITE_NAME, TEST_NAME, TEST_BODY, *extra],
        dependencies=dependencies,
    )


BUILTIN_TEMPLATES: list[CodeTemplate] = [
    # Test files
    _test_template(
        "playwright-ts-basic", "Playwright TypeScript Test", "playwright", "typescript",
        PLAYWRIGHT_TEST, ["@playwright/test", "typescript"],
    ),
    _test_template(
        "playwright-js-basic", "Playwright JavaScript Test", "playwright", "javascript",
        PLAYWRIGHT_TEST, ["@playwright/test"],
    ),
    _test_template(
        "playwright-python-pytest", "Playwright Python Test", "playwright", "python",
        PLAYWRIGHT_PYTHON_TEST, ["pytest", "pytest-playwright"],
        [TemplatePlaceholder(
            key="function_name",
            name="Function Name",
            description="snake_case test function suffix",
            required=True,
            validation=r"^[a-z_][a-z0-9_]*$",
        )],
    ),
    _test_template(
        "cypress-js-e2e", "Cypress E2E JavaScript Test", "cypress", "javascript",
        CYPRESS_TEST, ["cypress"],
    ),
    _test_template(
        "cypress-ts-e2e", "Cypress E2E TypeScript Test", "cypress", "typescript",
        CYPRESS_TEST, ["cypress", "typescript"],
    ),
    _test_template(
        "selenium-python-unittest", "Selenium Python unittest", "selenium", "python",
        SELENIUM_TEST, ["selenium"],
        [
            CLASS_NAME,
            TemplatePlaceholder(
                key="function_name",
                name="Test Method Name",
                description="snake_case test method suffix",
                required=True,
                validation=r"^[a-z_][a-z0-9_]*$",
            ),
        ],
    ),
    _test_template(
        "puppeteer-jest-basic", "Puppeteer Jest JavaScript Test", "puppeteer", "javascript",
        PUPPETEER_TEST, ["puppeteer", "jest", "jest-puppeteer"], [TIMEOUT],
    ),
    _test_template(
        "puppeteer-jest-ts", "Puppeteer Jest TypeScript Test", "puppeteer", "typescript",
        PUPPETEER_TEST, ["puppeteer", "jest", "jest-puppeteer", "ts-jest", "typescript"], [TIMEOUT],
    ),
    # Page objects
    CodeTemplate(
        id="page-object-ts",
        name="TypeScript Page Object",
        description="Page object class with one method per recorded action",
        framework="generic",
        language="typescript",
        category=TemplateCategory.PAGE_OBJECT,
        template=JS_PAGE_OBJECT,
        placeholders=PAGE_OBJECT_PLACEHOLDERS,
    ),
    CodeTemplate(
        id="page-object-js",
        name="JavaScript Page Object",
        description="Page object class with one method per recorded action",
        framework="generic",
        language="javascript",
        category=TemplateCategory.PAGE_OBJECT,
        template=JS_PAGE_OBJECT,
        placeholders=PAGE_OBJECT_PLACEHOLDERS,
    ),
    CodeTemplate(
        id="page-object-python",
        name="Python Page Object",
        description="Page object class with one method per recorded action",
        framework="generic",
        language="python",
        category=TemplateCategory.PAGE_OBJECT,
        template=PYTHON_PAGE_OBJECT,
        placeholders=PAGE_OBJECT_PLACEHOLDERS,
    ),
    # Config files
    CodeTemplate(
        id="playwright-config-ts",
        name="Playwright Configuration (TypeScript)",
        description="playwright.config.ts for generated tests",
        framework="playwright",
        language="typescript",
        category=TemplateCategory.CONFIG,
        template=PLAYWRIGHT_CONFIG,
        placeholders=[
            TemplatePlaceholder(key="test_dir", name="Test Directory", default_value="./tests"),
            TemplatePlaceholder(key="base_url", name="Base URL", validation=r"^https?://"),
            TIMEOUT,
        ],
        dependencies=["@playwright/test"],
    ),
    CodeTemplate(
        id="playwright-config-js",
        name="Playwright Configuration (JavaScript)",
        description="playwright.config.js for generated tests",
        framework="playwright",
        language="javascript",
        category=TemplateCategory.CONFIG,
        template=PLAYWRIGHT_CONFIG,
        placeholders=[
            TemplatePlaceholder(key="test_dir", name="Test Directory", default_value="./tests"),
            TemplatePlaceholder(key="base_url", name="Base URL", validation=r"^https?://"),
            TIMEOUT,
        ],
        dependencies=["@playwright/test"],
    ),
    CodeTemplate(
        id="cypress-config-js",
        name="Cypress Configuration (JavaScript)",
        framework="cypress",
        language="javascript",
        category=TemplateCategory.CONFIG,
        template=CYPRESS_CONFIG,
        placeholders=[TIMEOUT],
        dependencies=["cypress"],
    ),
    CodeTemplate(
        id="cypress-config-ts",
        name="Cypress Configuration (TypeScript)",
        framework="cypress",
        language="typescript",
        category=TemplateCategory.CONFIG,
        template=CYPRESS_CONFIG,
        placeholders=[TIMEOUT],
        dependencies=["cypress", "typescript"],
    ),
    CodeTemplate(
        id="jest-puppeteer-config",
        name="Jest Configuration for Puppeteer",
        framework="puppeteer",
        language="javascript",
        category=TemplateCategory.CONFIG,
        template=JEST_CONFIG,
        placeholders=[TIMEOUT],
        dependencies=["jest", "jest-puppeteer"],
    ),
    CodeTemplate(
        id="pytest-ini",
        name="pytest Configuration",
        framework="generic",
        language="python",
        category=TemplateCategory.CONFIG,
        template=PYTEST_INI,
        dependencies=["pytest"],
    ),
    # Helpers
    CodeTemplate(
        id="cypress-commands",
        name="Cypress Custom Commands",
        framework="cypress",
        language="javascript",
        category=TemplateCategory.HELPER,
        template=CYPRESS_COMMANDS,
        placeholders=[TIMEOUT],
    ),
    CodeTemplate(
        id="puppeteer-utils",
        name="Puppeteer Test Utilities",
        framework="puppeteer",
        language="javascript",
        category=TemplateCategory.HELPER,
        template=PUPPETEER_UTILS,
        placeholders=[
            TIMEOUT,
            TemplatePlaceholder(key="retries", name="Retries", type="number", default_value=3),
        ],
        dependencies=["puppeteer"],
    ),
    CodeTemplate(
        id="test-data-helper",
        name="Test Data Factory",
        description="TypeScript factory producing typed test data with overrides",
        framework="generic",
        language="typescript",
        category=TemplateCategory.HELPER,
        template=TEST_DATA_HELPER,
        placeholders=[
            CLASS_NAME,
            TemplatePlaceholder(key="interface_name", name="Interface Name", required=True),
            TemplatePlaceholder(key="fields", name="Fields", type="array", required=True),
        ],
    ),
]
