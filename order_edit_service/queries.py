"""
queries.py — GraphQL documents sent to the commerce Admin API.

Every document is a named operation; the mock commerce service dispatches on
the operation name.
"""

ORDER_TAGS = """
query OrderTags($id: ID!) {
  order(id: $id) { id tags }
}
"""

ORDER_EDIT_BEGIN = """
mutation OrderEditBegin($id: ID!) {
  orderEditBegin(id: $id) {
    calculatedOrder {
      id
      lineItems(first: 50) { edges { node { id title quantity } } }
    }
    userErrors { field message }
  }
}
"""

ORDER_EDIT_ADD_LINE_ITEM_DISCOUNT = """
mutation OrderEditAddLineItemDiscount($id: ID!, $lineItemId: ID!, $discount: OrderEditAppliedDiscountInput!) {
  orderEditAddLineItemDiscount(id: $id, lineItemId: $lineItemId, discount: $discount) {
    calculatedOrder { id }
    userErrors { field message }
  }
}
"""

ORDER_EDIT_SET_QUANTITY = """
mutation OrderEditSetQuantity($id: ID!, $lineItemId: ID!, $quantity: Int!) {
  orderEditSetQuantity(id: $id, lineItemId: $lineItemId, quantity: $quantity) {
    calculatedOrder { id }
    userErrors { field message }
  }
}
"""

ORDER_EDIT_ADD_VARIANT = """
mutation OrderEditAddVariant($id: ID!, $variantId: ID!, $quantity: Int!) {
  orderEditAddVariant(id: $id, variantId: $variantId, quantity: $quantity) {
    calculatedOrder { id }
    userErrors { field message }
  }
}
"""

ORDER_EDIT_COMMIT = """
mutation OrderEditCommit($id: ID!) {
  orderEditCommit(id: $id, notifyCustomer: false) {
    order { id name }
    userErrors { field message }
  }
}
"""

CREATE_ORDER = """
mutation CreateOrder($order: OrderCreateOrderInput!) {
  orderCreate(order: $order) {
    userErrors { field message }
    order { id name }
  }
}
"""

ADD_TAG = """
mutation AddTag($id: ID!, $tags: [String!]!) {
  tagsAdd(id: $id, tags: $tags) {
    userErrors { field message }
    node { id }
  }
}
"""

MARK_PAID = """
mutation MarkPaid($input: OrderMarkAsPaidInput!) {
  orderMarkAsPaid(input: $input) {
    userErrors { field message }
    order { id displayFinancialStatus }
  }
}
"""

MY_ORDERS = """
query MyOrders($first: Int!, $q: String!) {
  orders(first: $first, query: $q, reverse: true) {
    edges {
      node {
        id
        name
        createdAt
        displayFinancialStatus
        tags
        totalPriceSet { shopMoney { amount currencyCode } }
        totalDiscountsSet { shopMoney { amount currencyCode } }
        currentTotalPriceSet { shopMoney { amount currencyCode } }
        lineItems(first: 20) {
          edges {
            node {
              id
              title
              quantity
              originalTotalSet { shopMoney { amount currencyCode } }
              discountedTotalSet { shopMoney { amount currencyCode } }
            }
          }
        }
      }
    }
  }
}
"""

ORDER_DETAIL = """
query OrderDetail($id: ID!) {
  order(id: $id) {
    id
    name
    totalDiscountsSet { shopMoney { amount currencyCode } }
    currentTotalPriceSet { shopMoney { amount currencyCode } }
    lineItems(first: 20) {
      edges {
        node {
          id
          title
          quantity
          discountedTotalSet { shopMoney { amount currencyCode } }
          originalTotalSet { shopMoney { amount currencyCode } }
        }
      }
    }
  }
}
"""

PRODUCTS = """
query Products($first: Int!) {
  products(first: $first) {
    edges {
      node {
        id
        title
        variants(first: 20) {
          edges { node { id title price } }
        }
      }
    }
  }
}
"""
