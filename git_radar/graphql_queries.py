"""GraphQL queries used by the repository source."""

REPOSITORY_SEARCH_QUERY = """
query ($query: String!, $first: Int!) {
  rateLimit {
    cost
    remaining
    resetAt
  }
  search(query: $query, type: REPOSITORY, first: $first) {
    repositoryCount
    nodes {
      ...RepositoryFields
    }
  }
}

fragment RepositoryFields on Repository {
  id
  databaseId
  name
  nameWithOwner
  description
  homepageUrl
  stargazerCount
  forkCount
  isArchived
  createdAt
  updatedAt
  owner {
    login
  }
  primaryLanguage {
    name
  }
  docsFolder: object(expression: "HEAD:docs") {
    __typename
  }
}
"""

__all__ = ["REPOSITORY_SEARCH_QUERY"]
